"""
API Response Utilities

Unified JSON envelope for clients that ask for application/json.
"""
from typing import Any, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class APIResponse(BaseModel):
    """Standard API response format"""
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    errors: Optional[List[str]] = None


def wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "")


def success(data: Any = None, message: str = None, status_code: int = 200) -> JSONResponse:
    """Return success response"""
    return JSONResponse(
        content=APIResponse(success=True, data=data, message=message).model_dump(),
        status_code=status_code
    )


def error(message: str, errors: List[str] = None, status_code: int = 400) -> JSONResponse:
    """Return error response"""
    return JSONResponse(
        content=APIResponse(success=False, message=message, errors=errors or []).model_dump(exclude={"data"}),
        status_code=status_code
    )
