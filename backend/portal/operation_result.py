"""
Portal Backend - Operation Result Envelope
============================================

What:  The success/error envelope every API handler resolves to before responding.
How:   Two immutable Pydantic models (OperationSuccess, OperationError) plus
       constructors, type predicates, and JSONResponse helpers.
Who:   Route handlers and the global exception handlers in main.py.

JSON shapes:
    success: {"success": true,  "data": <T>, "message"?: str}
    error:   {"success": false, "error": str, "code"?: str, "details"?: object}

The HTTP status is NOT part of the result. Handlers pick it from the error's
semantic code with status_for_code(), so domain error classification can be
tested without any transport.
"""

from enum import Enum
from typing import Any, Dict, Generic, Literal, Optional, TypeVar, Union

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict
from starlette.responses import JSONResponse

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Semantic error codes shared by every handler."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


_STATUS_BY_CODE: Dict[str, int] = {
    ErrorCode.BAD_REQUEST.value: 400,
    ErrorCode.UNAUTHORIZED.value: 401,
    ErrorCode.FORBIDDEN.value: 403,
    ErrorCode.NOT_FOUND.value: 404,
    ErrorCode.CONFLICT.value: 409,
    ErrorCode.VALIDATION_ERROR.value: 400,
    ErrorCode.RATE_LIMIT_EXCEEDED.value: 429,
    ErrorCode.INTERNAL_SERVER_ERROR.value: 500,
}


class OperationSuccess(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    success: Literal[True] = True
    data: T
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": True, "data": jsonable_encoder(self.data)}
        if self.message:
            payload["message"] = self.message
        return payload


class OperationError(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    error: str
    code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.error}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = jsonable_encoder(self.details)
        return payload


OperationResult = Union[OperationSuccess[Any], OperationError]


# ── Constructors ──────────────────────────────────────────────────────────

def success(data: T, message: Optional[str] = None) -> OperationSuccess[T]:
    return OperationSuccess[Any](data=data, message=message)


def error(
    message: str,
    code: Optional[Union[ErrorCode, str]] = None,
    details: Optional[Dict[str, Any]] = None,
) -> OperationError:
    if isinstance(code, ErrorCode):
        code = code.value
    return OperationError(error=message, code=code, details=details)


def is_success(result: OperationResult) -> bool:
    return result.success is True


def is_error(result: OperationResult) -> bool:
    return result.success is False


def status_for_code(code: Optional[Union[ErrorCode, str]]) -> int:
    """
    Map a semantic error code to its HTTP status.

    Codes outside the shared taxonomy (e.g. service-specific ones such as
    UPLOAD_ERROR) are treated as server errors.
    """
    if isinstance(code, ErrorCode):
        code = code.value
    return _STATUS_BY_CODE.get(code or "", 500)


# ── Response Helpers ──────────────────────────────────────────────────────

def success_response(
    data: Any,
    message: Optional[str] = None,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=success(data, message).to_dict(),
        headers=headers,
    )


def error_response(
    result: Union[OperationError, str],
    code: Optional[Union[ErrorCode, str]] = None,
    details: Optional[Dict[str, Any]] = None,
    status_code: Optional[int] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    Build a JSONResponse from an OperationError (or a message plus code).

    The status defaults to status_for_code(result.code).
    """
    if isinstance(result, str):
        result = error(result, code, details)
    return JSONResponse(
        status_code=status_code or status_for_code(result.code),
        content=result.to_dict(),
        headers=headers,
    )
