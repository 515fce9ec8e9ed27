"""
Shared JSON error responses for route handlers.
"""

from typing import Optional

from fastapi.responses import JSONResponse

from courttime.services.results import AdmissionResult, ErrorKind

ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.SLOT_UNAVAILABLE: 400,
    ErrorKind.NOT_FOUND_OR_UNAUTHORIZED: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PERSISTENCE_ERROR: 500,
}


def error_response(status_code: int, error: str, kind: Optional[ErrorKind] = None) -> JSONResponse:
    """``{"success": false, "error": ...}`` with an optional ``errorCode``."""
    content = {"success": False, "error": error}
    if kind is not None:
        content["errorCode"] = kind.value
    return JSONResponse(status_code=status_code, content=content)


def failure_response(result: AdmissionResult) -> JSONResponse:
    """Map a failed AdmissionResult to its HTTP status."""
    return error_response(ERROR_STATUS_CODES[result.kind], result.error, result.kind)


def server_error(error: str = "Internal server error") -> JSONResponse:
    return error_response(500, error, ErrorKind.PERSISTENCE_ERROR)
