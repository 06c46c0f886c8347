"""Response Envelopes — the {success, data, error?, message?} shape every route returns.

Invariants:
    - Success bodies always carry success=True and a data key
    - Pydantic payloads are dumped by alias (camelCase) in JSON mode
    - Paginated bodies add a pagination block built by core.pagination
"""

from typing import Any

from pydantic import BaseModel

from app.core.pagination import PaginationParams, build_pagination


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, (list, tuple)):
        return [_dump(item) for item in data]
    if isinstance(data, dict):
        return {key: _dump(value) for key, value in data.items()}
    return data


def success_response(data: Any, message: str | None = None) -> dict:
    body: dict[str, Any] = {"success": True, "data": _dump(data)}
    if message:
        body["message"] = message
    return body


def paginated_response(
    items: list[Any], total: int, params: PaginationParams,
) -> dict:
    return {
        "success": True,
        "data": _dump(items),
        "pagination": build_pagination(params, total),
    }


def error_body(
    message: str, code: str, details: dict[str, list[str]] | None = None,
) -> dict:
    body: dict[str, Any] = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return body
