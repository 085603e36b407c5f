"""
Response Shaping
================

Maps operation results to the JSON envelope used by every /api endpoint:

    success: {"success": true, "data": ..., "message": "..."}
    failure: {"success": false, "error": "...", "code": "..."}

``code`` is only present for lifecycle conflicts and validation failures,
both of which share HTTP 400. The NOT_FOUND body is the same whether a case
is absent or merely invisible to the caller.
"""

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .results import Failure, FailureKind, Result

GENERIC_SERVER_ERROR = "Internal server error"

_CODED_KINDS = (FailureKind.CONFLICT, FailureKind.VALIDATION)


def error_body(message: str, kind: Optional[FailureKind] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message}
    if kind in _CODED_KINDS:
        body["code"] = kind.value
    return body


def success_body(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    return body


def to_response(result: Result) -> JSONResponse:
    if isinstance(result, Failure):
        return JSONResponse(status_code=result.status_code, content=error_body(result.message, result.kind))
    return JSONResponse(status_code=result.status_code, content=success_body(result.data, result.message))


def server_error() -> JSONResponse:
    return JSONResponse(status_code=500, content=error_body(GENERIC_SERVER_ERROR))
