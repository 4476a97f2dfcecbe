# app/analytics/dao.py
"""Storage connector: runs compiled analytics queries against the telemetry store."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.query.schemas import CompiledQuery

logger = logging.getLogger(__name__)


class QueryExecutionError(Exception):
    """The telemetry store rejected or failed to run a compiled query. Never retried here."""

    code = "QUERY_EXECUTION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": {}}


@dataclass
class ExecutionResult:
    rows: List[Dict[str, Any]]
    total_rows: int
    query_time_ms: float


class AnalyticsDAO:
    """Executes CompiledQuery objects on a telemetry store session."""

    def __init__(self, dw_session: Session):
        self.db = dw_session

    def execute(self, compiled: CompiledQuery) -> ExecutionResult:
        start = time.perf_counter()
        try:
            result = self.db.execute(text(compiled.sql), compiled.parameters)
            rows = [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Analytics query failed: %s", e)
            cause = getattr(e, "orig", None) or e
            raise QueryExecutionError(f"Query execution failed: {cause}") from e

        elapsed_ms = round((time.perf_counter() - start) * 1000, 3)
        logger.info("Analytics query returned %d rows in %.1f ms", len(rows), elapsed_ms)
        return ExecutionResult(rows=rows, total_rows=len(rows), query_time_ms=elapsed_ms)
