# app/query/granularity.py
"""Dialect-specific time bucketing."""

from datetime import datetime, timedelta
from typing import Dict

from .errors import UnsupportedDialectError
from .schemas import DimensionDefinition, Granularity

# Text form of a bucket start; the SQLite templates below render the same shape
BUCKET_FORMAT = "%Y-%m-%d %H:%M:%S"

# SQLite has no DATE_TRUNC; every bucket is rendered as its 'YYYY-MM-DD HH:MM:SS' start.
_SQLITE_TEMPLATES: Dict[Granularity, str] = {
    Granularity.HOUR: "strftime('%Y-%m-%d %H:00:00', {expr})",
    Granularity.DAY: "strftime('%Y-%m-%d 00:00:00', {expr})",
    # 'weekday 0' advances to Sunday; six days back is that week's Monday
    Granularity.WEEK: "strftime('%Y-%m-%d 00:00:00', {expr}, 'weekday 0', '-6 days')",
    Granularity.MONTH: "strftime('%Y-%m-01 00:00:00', {expr})",
    Granularity.QUARTER: (
        "printf('%s-%02d-01 00:00:00', strftime('%Y', {expr}), "
        "((CAST(strftime('%m', {expr}) AS INTEGER) - 1) / 3) * 3 + 1)"
    ),
    Granularity.YEAR: "strftime('%Y-01-01 00:00:00', {expr})",
}

_POSTGRESQL_TEMPLATES: Dict[Granularity, str] = {
    granularity: f"DATE_TRUNC('{granularity.value}', {{expr}})" for granularity in Granularity
}

DIALECT_TEMPLATES: Dict[str, Dict[Granularity, str]] = {
    "postgresql": _POSTGRESQL_TEMPLATES,
    "sqlite": _SQLITE_TEMPLATES,
}

DIALECT_ALIASES = {
    "postgres": "postgresql",
    "psycopg2": "postgresql",
    "pysqlite": "sqlite",
}


def normalize_dialect(dialect: str) -> str:
    name = (dialect or "").strip().lower()
    return DIALECT_ALIASES.get(name, name)


class GranularityCompiler:
    """Wraps a time expression in the truncation call for one SQL dialect."""

    def __init__(self, dialect: str = "postgresql"):
        self.dialect = normalize_dialect(dialect)
        if self.dialect not in DIALECT_TEMPLATES:
            raise UnsupportedDialectError(dialect)
        self._templates = DIALECT_TEMPLATES[self.dialect]

    def truncate(self, expression: str, granularity: Granularity) -> str:
        return self._templates[Granularity.parse(granularity)].format(expr=expression)

    def dimension_expression(self, dimension: DimensionDefinition) -> str:
        """Expression for a dimension; pre-bucketed time dimensions come back truncated."""
        if dimension.is_time() and dimension.granularity is not None:
            return self.truncate(dimension.expression, dimension.granularity)
        return dimension.expression


def bucket_start(value: datetime, granularity: Granularity) -> datetime:
    """Start of the bucket containing `value`, matching what truncate() renders in SQL."""
    granularity = Granularity.parse(granularity)
    start = value.replace(minute=0, second=0, microsecond=0)
    if granularity == Granularity.HOUR:
        return start
    start = start.replace(hour=0)
    if granularity == Granularity.DAY:
        return start
    if granularity == Granularity.WEEK:
        return start - timedelta(days=start.weekday())
    if granularity == Granularity.MONTH:
        return start.replace(day=1)
    if granularity == Granularity.QUARTER:
        return start.replace(month=(start.month - 1) // 3 * 3 + 1, day=1)
    return start.replace(month=1, day=1)
