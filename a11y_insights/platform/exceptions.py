import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from a11y_insights.features.analytics.exceptions import AnalyticsConfigError, AnalyticsError
from a11y_insights.platform.response import api_response

logger = logging.getLogger(__name__)


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or None, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            errors=exc.errors(),
        )

    @app.exception_handler(AnalyticsError)
    async def analytics_exception_handler(request: Request, exc: AnalyticsError):
        logger.error(f"Analytics error on {request.url.path}: {exc}")
        return api_response(
            message=str(exc),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            errors=exc.errors if isinstance(exc, AnalyticsConfigError) else None,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
