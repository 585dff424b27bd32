"""Exception handlers rendering domain errors as JSON."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from onduty.exceptions import OnDutyError, format_error_for_api


logger = logging.getLogger(__name__)


async def handle_domain_error(request: Request, exc: OnDutyError) -> JSONResponse:
    """Render an OnDutyError with its own status code."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}")
    return JSONResponse(status_code=exc.status_code, content=format_error_for_api(exc))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body/query validation failures as 400 in the domain error shape."""
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": message,
                "details": {"errors": errors}
            }
        }
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OnDutyError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
