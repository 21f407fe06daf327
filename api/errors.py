"""
JSON error responses shared by the /api and /webhook routers.

Every failure body has the shape {"success": false, "error": "...", ...}.
"""

from typing import Any, Type, TypeVar

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def error_response(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


def _describe(exc: Any, prefix: str = "") -> str:
    parts = []
    for err in exc.errors():
        path = [prefix] if prefix else []
        path += [str(p) for p in err.get("loc", ()) if p != "body"]
        location = ".".join(path)
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def parse_nested(model: Type[ModelT], data: Any, prefix: str) -> ModelT:
    """
    Validate a nested payload (admin `data`, n8n `payload`) against `model`.

    Raises:
        ValueError: with a compact "prefix.field: reason" message, mapped to 400 by the routers
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValueError(_describe(e, prefix)) from None


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body validation failures are 400s, not FastAPI's default 422."""
    return error_response(status.HTTP_400_BAD_REQUEST, _describe(exc))
