# app/core/dependencies.py
"""Dependencies for the analytics system"""

from typing import Annotated
from fastapi import Depends
from sqlalchemy.orm import Session
from app.core.config import ANALYTICS_SQL_DIALECT
from app.core.database import get_db, get_dw_db
from app.query import QueryCompiler, SchemaRegistry, get_default_registry

# Core database dependencies
SessionDep = Annotated[Session, Depends(get_db)]
DWSessionDep = Annotated[Session, Depends(get_dw_db)]


def get_schema_registry() -> SchemaRegistry:
    """Shared, immutable schema registry"""
    return get_default_registry()


RegistryDep = Annotated[SchemaRegistry, Depends(get_schema_registry)]


def resolve_dialect(dw_db: Session) -> str:
    """Configured dialect override, else the dialect of the bound telemetry store engine"""
    if ANALYTICS_SQL_DIALECT:
        return ANALYTICS_SQL_DIALECT
    return dw_db.get_bind().dialect.name


def get_query_compiler(registry: RegistryDep, dw_db: DWSessionDep) -> QueryCompiler:
    return QueryCompiler(registry, dialect=resolve_dialect(dw_db))


CompilerDep = Annotated[QueryCompiler, Depends(get_query_compiler)]


def get_analytics_service(compiler: CompilerDep, dw_db: DWSessionDep):
    """Get analytics service bound to the telemetry store"""
    from app.analytics.dao import AnalyticsDAO
    from app.analytics.service import AnalyticsService

    return AnalyticsService(compiler, AnalyticsDAO(dw_db))
