# app/logging/router.py
"""API router for the request log."""

from fastapi import APIRouter, Depends, Query, Response, HTTPException
from typing import List, Optional

from app.core.dependencies import SessionDep
from app.logging.schemas import LogRead
from app.logging.service import LogService
from app.logging.dao import LogDAO


router = APIRouter(
    prefix="/logs",
    tags=["logs"],
)


def get_log_service(session: SessionDep) -> LogService:
    return LogService(LogDAO(session))


@router.get("/", response_model=List[LogRead])
def get_logs(
    response: Response,
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    hours: int = Query(24, ge=1, le=168, description="Time window in hours"),
    status_min: Optional[int] = Query(None, ge=100, le=599, description="Minimum status code"),
    status_max: Optional[int] = Query(None, ge=100, le=599, description="Maximum status code"),
    search: Optional[str] = Query(None, description="Search term for filtering logs"),
    error_code: Optional[str] = Query(None, description="Analytics error code, e.g. UNKNOWN_IDENTIFIER"),
    log_service: LogService = Depends(get_log_service),
) -> List[LogRead]:
    """Get logs with pagination and filtering."""
    if status_min is not None and status_max is not None and status_min > status_max:
        raise HTTPException(status_code=400, detail="status_min cannot be greater than status_max")

    logs = log_service.get_logs_with_filters(
        limit=limit,
        offset=offset,
        hours=hours,
        status_min=status_min,
        status_max=status_max,
        search=search,
        error_code=error_code,
    )

    total_count = log_service.get_logs_count_with_filters(
        hours=hours, status_min=status_min, status_max=status_max, search=search, error_code=error_code
    )

    # Pagination headers
    response.headers["X-Total-Count"] = str(total_count)
    response.headers["X-Page-Size"] = str(limit)
    response.headers["X-Page-Offset"] = str(offset)

    return logs


@router.get("/{log_id}", response_model=LogRead)
def get_log_by_id(
    log_id: int,
    log_service: LogService = Depends(get_log_service),
) -> LogRead:
    log = log_service.get_by_id(log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Log not found")
    return log
