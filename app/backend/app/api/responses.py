"""Success envelope shared by every route."""

from __future__ import annotations


def success_response(data: object) -> dict[str, object]:
    return {"success": True, "data": data}
