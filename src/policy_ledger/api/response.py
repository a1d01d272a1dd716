from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from policy_ledger.models.query import Page


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(key) if isinstance(key, str) else key: _camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_camelize(item) for item in value]
    return value


def encode(data: Any) -> Any:
    """JSON-safe, camelCase payload; money stays exact as decimal strings."""
    return _camelize(jsonable_encoder(data, custom_encoder={Decimal: str}))


def ok(
    data: Any = None,
    *,
    pagination: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
) -> JSONResponse:
    """
    Standard success wrapper:
    {
      "success": true,
      "data": ...,
      "pagination": {...} (optional)
    }
    """
    payload: Dict[str, Any] = {"success": True, "data": encode(data)}
    if pagination is not None:
        payload["pagination"] = pagination
    return JSONResponse(status_code=status_code, content=payload)


def page(result: Page) -> JSONResponse:
    return ok(result.items, pagination=result.pagination())


def created(data: Any) -> JSONResponse:
    return ok(data, status_code=201)


def err(
    message: str = "Something went wrong",
    *,
    status_code: int = 400,
    code: Optional[str] = None,
    details: Any = None,
) -> JSONResponse:
    """
    Standard error wrapper:
    {
      "success": false,
      "error": {"code": "...", "message": "...", "details": ...}
    }
    """
    payload: Dict[str, Any] = {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": encode(details),
        },
    }
    return JSONResponse(status_code=status_code, content=payload)
