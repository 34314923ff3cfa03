"""
Confessions API Response Utilities
Standardized response envelope and domain error mapping
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from typing import Any, Dict
from datetime import datetime

from .errors import ConfessionError, InvalidState, NotFound, StoreError
from .logging_config import api_logger


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(data: Any = None, message: str = None) -> Dict:
    """Create success response"""
    response = {
        "ok": True,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    return response


# ============================================================
# ERROR RESPONSES
# ============================================================

STATUS_CODES = {
    NotFound: 404,
    InvalidState: 409,
    StoreError: 500,
}


def status_code_for(exc: ConfessionError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def error_body(message: str, error_code: str) -> Dict:
    return {
        "ok": False,
        "error": message,
        "error_code": error_code,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


async def confession_error_handler(request: Request, exc: ConfessionError) -> JSONResponse:
    """Translate workflow errors into the API error envelope"""
    status_code = status_code_for(exc)
    if status_code >= 500:
        api_logger.error(
            f"Store error: {exc.message}",
            error=exc.__cause__ or exc,
            path=request.url.path,
        )
    else:
        api_logger.warning(
            f"API Error: {exc.message}",
            status_code=status_code,
            error_code=exc.error_code,
            path=request.url.path,
        )
    return JSONResponse(status_code=status_code, content=error_body(exc.message, exc.error_code))
