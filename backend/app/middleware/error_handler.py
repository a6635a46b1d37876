"""Global error handlers rendering RFC 7807 problem details."""
import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.exceptions import AppException, ValidationError

logger = structlog.get_logger()


def problem(status: int, title: str, detail: str, error_type: str = "about:blank", **extra) -> JSONResponse:
    content = {"type": error_type, "title": title, "status": status, "detail": detail, **extra}
    return JSONResponse(status_code=status, content=jsonable_encoder(content))


def setup_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        extra = {"errors": exc.errors} if isinstance(exc, ValidationError) and exc.errors else {}
        if exc.status_code >= 500:
            logger.warning("app_exception", path=request.url.path, status=exc.status_code, detail=exc.detail)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        response = problem(exc.status_code, exc.title, exc.detail, exc.error_type, instance=request.url.path, **extra)
        if headers:
            response.headers.update(headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return problem(
            422, "Validation Error", "Request validation failed", "validation-error",
            instance=request.url.path, errors=errors,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=True)
        return problem(500, "Internal Server Error", "An unexpected error occurred.")
