import logging
import time

from fastapi import Request, Response
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from typing import Callable

from app.core.config import APPLICATION_ID
from app.logging.service import HOSTNAME, write_request_log

logger = logging.getLogger(__name__)

# Paths that are never written to the request log
EXCLUDED_PATHS = ("/api/logs", "/api/docs", "/api/openapi.json")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Persists one Log row per request, after the response has been sent."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        logger.info("Logging middleware initialized on host %s, App ID: %s", HOSTNAME, APPLICATION_ID)

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path.startswith(EXCLUDED_PATHS):
            return await call_next(request)

        start_time = time.time()

        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")

        # Reconstruct stream
        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code
        is_json = "json" in response.headers.get("content-type", "")

        response_body = b""
        if isinstance(response, Response) and hasattr(response, "body"):
            response_body = response.body
        elif hasattr(response, "body_iterator"):
            # Streaming response: collect chunks as they are sent
            original_iterator = response.body_iterator
            chunks = []

            async def buffer_iterator():
                nonlocal response_body
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                response_body = b"".join(chunks)

            response.body_iterator = buffer_iterator()

        def log_to_db():
            if not is_json:
                body_to_log = "[Non-JSON response body not logged]"
            elif response_body:
                body_to_log = response_body.decode("utf-8", errors="ignore")
            else:
                body_to_log = "[Response body not available]"

            write_request_log(
                request,
                status_code=status_code,
                response_body=body_to_log,
                request_body=request_body,
                processing_time=duration_ms,
                # Set by the analytics exception handlers
                error_code=getattr(request.state, "error_code", None),
            )

        response.background = getattr(response, "background", None) or BackgroundTask(log_to_db)
        return response
