# app/logging/service.py
"""Service layer for the request log."""

import json
import logging
import socket
from datetime import datetime
from typing import Any, List, Optional

from fastapi import Request

from app.core.config import APPLICATION_ID
from app.core.database import SessionLocal
from app.logging.dao import LogDAO
from app.logging.models import Log
from app.logging.schemas import LogRead

logger = logging.getLogger(__name__)

HOSTNAME = socket.gethostname() or "unknown_host"


def safe_json_dumps(obj: Any) -> str:
    return json.dumps(obj, indent=2, default=str)


def write_request_log(
    request: Request,
    status_code: int,
    response_body: str,
    request_body: Optional[str] = None,
    processing_time: Optional[float] = None,
    error_code: Optional[str] = None,
) -> None:
    """Persist one request log row in its own session.

    Failures are logged, never raised.
    """
    with SessionLocal() as session:
        try:
            session.add(
                Log(
                    timestamp=datetime.now(),
                    method=request.method,
                    path=str(request.url.path),
                    status_code=status_code,
                    client_ip=request.client.host if request.client else None,
                    request_headers=json.dumps(dict(request.headers)),
                    request_body=request_body,
                    response_body=response_body,
                    processing_time=processing_time,
                    user_agent=request.headers.get("user-agent"),
                    hostname=HOSTNAME,
                    application_id=APPLICATION_ID,
                    error_code=error_code,
                )
            )
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("Failed to write request log for %s %s", request.method, request.url.path)


class LogService:
    """Read access to the request log."""

    def __init__(self, log_dao: LogDAO):
        self.dao = log_dao

    def get_logs_with_filters(
        self,
        limit: int = 50,
        offset: int = 0,
        hours: int = 24,
        status_min: Optional[int] = None,
        status_max: Optional[int] = None,
        search: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> List[LogRead]:
        logs = self.dao.get_logs_with_filters(
            limit=limit,
            offset=offset,
            hours=hours,
            status_min=status_min,
            status_max=status_max,
            search=search,
            error_code=error_code,
        )
        return [LogRead.model_validate(log) for log in logs]

    def get_logs_count_with_filters(
        self,
        hours: int = 24,
        status_min: Optional[int] = None,
        status_max: Optional[int] = None,
        search: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> int:
        return self.dao.count_logs_with_filters(
            hours=hours,
            status_min=status_min,
            status_max=status_max,
            search=search,
            error_code=error_code,
        )

    def get_by_id(self, log_id: int) -> Optional[LogRead]:
        log = self.dao.get_by_id(log_id)
        return LogRead.model_validate(log) if log else None
