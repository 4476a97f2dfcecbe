"""FastAPI application entry point for the classroom analytics service."""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import ResponseValidationError, RequestValidationError

from app.analytics.dao import QueryExecutionError
from app.core.database import init_db
from app.core.router import register_routes
from app.logging.middleware import LoggingMiddleware
from app.logging.exception_handlers import (
    general_exception_handler,
    http_exception_handler,
    query_compilation_exception_handler,
    query_execution_exception_handler,
    request_validation_exception_handler,
    response_validation_exception_handler,
)
from app.query.errors import QueryCompilationError


def create_app() -> FastAPI:

    app = FastAPI(
        title="Classroom Analytics",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    init_db()

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(QueryCompilationError, query_compilation_exception_handler)
    app.add_exception_handler(QueryExecutionError, query_execution_exception_handler)
    # Response validation errors aren't captured by the middleware
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    @app.get("/api/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app
