"""
Global error handling middleware.

Every error leaving a route is turned into a JSON body of the form
``{"error": <kind>, "detail": <message>}``.
"""
import logging
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from fieldlens.domain.exceptions import FieldLensError, InvalidGeometry
from fieldlens.infrastructure.raster_provider_client import RasterProviderError

logger = logging.getLogger(__name__)

# Client-facing error kinds; other FieldLensErrors use their class name
_ERROR_KINDS = {
    InvalidGeometry: "Invalid boundary",
    RasterProviderError: "Raster provider error",
}


def _error_kind(exc: Exception) -> str:
    for exc_type, kind in _ERROR_KINDS.items():
        if isinstance(exc, exc_type):
            return kind
    return type(exc).__name__


def _error_response(status_code: int, kind: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "detail": detail})


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Maps application errors to HTTP responses.

    - ``FieldLensError``: its own ``status_code`` (400 for bad boundaries and
      coordinates, 502 for raster failures)
    - ``RasterProviderError``: 502, the provider's status is only logged;
      a safety net for code calling the provider client directly
    - ``ValueError``: 400
    - anything else: 500 with a generic message
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        context = {"path": request.url.path, "method": request.method}
        try:
            return await call_next(request)

        except FieldLensError as e:
            logger.warning(f"{type(e).__name__}: {e.message}", extra={**context, "status_code": e.status_code})
            return _error_response(e.status_code, _error_kind(e), e.message)

        except RasterProviderError as e:
            # Routes reach the provider through RasterClipper, which wraps these
            # in RasterUnavailable; this branch only catches direct client use
            logger.error(
                f"Raster provider error: {e.message}",
                extra={**context, "status_code": e.status_code},
            )
            return _error_response(status.HTTP_502_BAD_GATEWAY, _error_kind(e), e.message)

        except ValueError as e:
            logger.warning(f"Validation error: {str(e)}", extra=context)
            return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(e))

        except Exception as e:
            logger.exception(f"Unhandled exception: {str(e)}", extra=context)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                "An unexpected error occurred",
            )
