# app/logging/exception_handlers.py

import logging
import traceback

from fastapi import Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import ResponseValidationError, RequestValidationError

from app.analytics.dao import QueryExecutionError
from app.logging.service import safe_json_dumps, write_request_log
from app.query.errors import QueryCompilationError

logger = logging.getLogger(__name__)

# Handlers for errors raised inside the routing layer only tag request.state;
# LoggingMiddleware writes the log row once the response has gone out.
# The catch-all handler runs outside the middleware and writes its own row.


async def query_compilation_exception_handler(request: Request, exc: QueryCompilationError):
    """Client-input problems in an analytics request"""
    request.state.error_code = exc.code
    logger.info("Rejected analytics query on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=400, content=jsonable_encoder({"error": exc.to_dict()}))


async def query_execution_exception_handler(request: Request, exc: QueryExecutionError):
    """Storage failures while running a compiled query"""
    request.state.error_code = exc.code
    logger.error("Analytics query execution failed on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=500, content={"error": exc.to_dict()})


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query strings"""
    request.state.error_code = "VALIDATION_ERROR"
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error("Response validation failed on %s: %s", request.url.path, exc.errors())
    request.state.error_code = "RESPONSE_VALIDATION_ERROR"
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and log them to database"""
    error_traceback = traceback.format_exc()
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)

    write_request_log(
        request,
        status_code=500,
        response_body=safe_json_dumps(
            {"error": str(exc), "type": type(exc).__name__, "traceback": error_traceback}
        ),
        request_body="Request body already consumed",
        error_code="INTERNAL_ERROR",
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )
