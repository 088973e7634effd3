"""Exception handlers turning errors into ``{error, message, details}`` bodies."""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import ErrorCode, OrgScopeError

logger = logging.getLogger(__name__)

_INTERNAL_ERROR_BODY = {
    "error": ErrorCode.INTERNAL_ERROR.value,
    "message": "Internal server error",
    "details": {},
}


async def orgscope_exception_handler(request: Request, exc: OrgScopeError) -> JSONResponse:
    """Domain errors: 4xx logged at INFO, anything else at ERROR."""
    level = logging.INFO if exc.status_code < 500 else logging.ERROR
    logger.log(
        level,
        "%s: %s", exc.error_code.value, exc.message,
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies, bad JSON and wrongly typed parameters become 400s."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    message = errors[0]["message"] if len(errors) == 1 else "Request validation failed"
    return JSONResponse(
        status_code=400,
        content={
            "error": ErrorCode.VALIDATION_ERROR.value,
            "message": message,
            "details": {"errors": errors},
        },
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "Database error on %s %s", request.method, request.url.path,
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=500, content=_INTERNAL_ERROR_BODY)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path,
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=500, content=_INTERNAL_ERROR_BODY)
