from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Optional

class APIException(HTTPException):
    """Base for errors raised by the booking services.

    ``code`` lets clients tell "not yours" apart from "bad input" without
    parsing the message.
    """

    status_code_default = 400
    code = "error"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.status_code_default, detail=detail)


class ValidationFailed(APIException):
    status_code_default = 400
    code = "validation_error"


class SlotConflict(APIException):
    status_code_default = 400
    code = "conflict"


class NotAuthorized(APIException):
    status_code_default = 403
    code = "forbidden"


class NotFound(APIException):
    status_code_default = 404
    code = "not_found"


class PaymentVerificationFailed(APIException):
    status_code_default = 400
    code = "payment_verification_failed"


class GatewayFailure(APIException):
    status_code_default = 502
    code = "gateway_error"


def create_error_response(error_message: str, code: str = "error") -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": code,
        "message": error_message,
    }

def create_success_response(data: Any, message: Optional[str] = None) -> dict:
    """Create a standardized success response"""
    body = {
        "success": True,
        "data": data,
        "error": None
    }
    if message:
        body["message"] = message
    return body

def _code_for_status(status_code: int) -> str:
    return {
        400: "validation_error",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        429: "rate_limited",
    }.get(status_code, "error")

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", "unauthorized")
        )

    code = exc.code if isinstance(exc, APIException) else _code_for_status(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=400,
        content=create_error_response(message, ValidationFailed.code),
    )
