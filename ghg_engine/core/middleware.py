"""
Custom middleware for audit logging and error handling
"""

import logging
import time
import uuid
from typing import Callable

import anyio
from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ghg_engine.core.exceptions import EmissionsEngineError, RegistryLoadError

logger = logging.getLogger(__name__)


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs every request with a request id and processing time"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        logger.info(
            f"Request started - ID: {request_id}, Method: {request.method}, "
            f"URL: {request.url}, Client: {request.client.host if request.client else 'unknown'}"
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"Request completed - ID: {request_id}, Status: {response.status_code}, "
            f"Time: {process_time:.3f}s"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into structured 500 responses"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            # HTTPException is rendered by FastAPI itself
            if isinstance(exc, HTTPException):
                logger.debug(
                    f"HTTPException encountered, letting FastAPI handle: {exc.status_code} - {exc.detail}"
                )
                raise exc

            # Client disconnects are not server errors
            if isinstance(exc, (anyio.EndOfStream, anyio.WouldBlock)):
                logger.debug(
                    f"Client connection issue (ignored) - Request ID: "
                    f"{getattr(request.state, 'request_id', 'N/A')}, Error: {type(exc).__name__}"
                )
                raise exc

            request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

            if isinstance(exc, RegistryLoadError):
                logger.error(
                    f"Factor registry unavailable - Request ID: {request_id}, Error: {exc}"
                )
                return JSONResponse(
                    status_code=503,
                    content={
                        "error_code": exc.error_code,
                        "message": "Emission factor registry is unavailable.",
                        "request_id": request_id,
                    },
                )

            if isinstance(exc, EmissionsEngineError):
                logger.warning(
                    f"Unhandled engine error - Request ID: {request_id}, "
                    f"{exc.error_code}: {exc}"
                )
                return JSONResponse(
                    status_code=422,
                    content={
                        "error_code": exc.error_code,
                        "message": str(exc),
                        "request_id": request_id,
                    },
                )

            logger.error(
                f"Unhandled server exception - Request ID: {request_id}, Error: {str(exc)}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error_code": "INTERNAL_SERVER_ERROR",
                    "message": "An internal server error occurred.",
                    "request_id": request_id,
                    "support_reference": f"ERR-{request_id[:8]}",
                },
            )
