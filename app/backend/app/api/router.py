"""Top-level API router."""

from fastapi import APIRouter

from app.api.routes.audit import router as audit_router
from app.api.routes.auth import router as auth_router
from app.api.routes.businesses import router as businesses_router
from app.api.routes.customers import router as customers_router
from app.api.routes.departments import router as departments_router
from app.api.routes.expenses import router as expenses_router
from app.api.routes.health import router as health_router
from app.api.routes.inventory import router as inventory_router
from app.api.routes.jobs import router as jobs_router
from app.api.routes.navigation import router as navigation_router
from app.api.routes.packages import router as packages_router
from app.api.routes.permissions import router as permissions_router
from app.api.routes.pos import router as pos_router
from app.api.routes.purchase_orders import router as purchase_orders_router
from app.api.routes.services import router as services_router
from app.api.routes.staff import router as staff_router
from app.api.routes.wallets import router as wallets_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router)
api_router.include_router(businesses_router)
api_router.include_router(navigation_router)
api_router.include_router(permissions_router)
api_router.include_router(staff_router)
api_router.include_router(departments_router)
api_router.include_router(customers_router)
api_router.include_router(services_router)
api_router.include_router(packages_router)
api_router.include_router(jobs_router)
api_router.include_router(inventory_router)
api_router.include_router(purchase_orders_router)
api_router.include_router(pos_router)
api_router.include_router(wallets_router)
api_router.include_router(expenses_router)
api_router.include_router(audit_router)
