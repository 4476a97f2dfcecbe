"""
Query compiler schemas and types for the analytics system.

This module defines the core types used by the QueryCompiler to turn a
declarative analytics request into parameterized SQL. Everything here is
immutable: definitions, requests, join plans and compiled queries are frozen
dataclasses, and the vocabulary (operators, granularities, directions) is a
closed set of enums.
"""

from typing import Dict, List, Optional, Any, Tuple, Union
from datetime import date, datetime
from dataclasses import dataclass, field
from enum import Enum

from .errors import (
    InvalidOrderDirectionError,
    InvalidTimeValueError,
    UnsupportedGranularityError,
    UnsupportedOperatorError,
)


class AggregationType(str, Enum):
    """Aggregation performed by a measure."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class DimensionKind(str, Enum):
    """Declared value kind of a dimension."""

    STRING = "string"
    NUMBER = "number"
    TIME = "time"


class FilterOperator(str, Enum):
    """Supported filter operators."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    CONTAINS = "contains"

    @classmethod
    def parse(cls, value: Any) -> "FilterOperator":
        """Convert a raw operator (canonical name or legacy alias) to an operator."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = _OPERATOR_ALIASES.get(key, key)
            try:
                return cls(key)
            except ValueError:
                pass
        raise UnsupportedOperatorError(value)

    @property
    def is_comparison(self) -> bool:
        return self in _COMPARISON_SQL

    @property
    def sql(self) -> str:
        """SQL comparison operator (binary comparisons only)."""
        return _COMPARISON_SQL[self]


_COMPARISON_SQL = {
    FilterOperator.EQ: "=",
    FilterOperator.NE: "!=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
}

# Accepted spellings besides the canonical names
_OPERATOR_ALIASES = {
    "equals": "eq",
    "=": "eq",
    "!=": "ne",
    "<>": "ne",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}


class Granularity(str, Enum):
    """Time bucket sizes for time dimensions."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: Any) -> "Granularity":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnsupportedGranularityError(value)


class OrderDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any) -> "OrderDirection":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidOrderDirectionError(value)


def member_alias(name: str) -> str:
    """Column alias for a measure or dimension: dots become underscores."""
    return name.replace(".", "_")


def parse_time_value(value: Any) -> Union[date, datetime]:
    """Parse an ISO date ('2024-01-31') or timestamp into a date or datetime.

    A date-only value stays a `date`, so callers can tell "the whole day" apart
    from an exact instant.
    """
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        raw = value.strip()
        try:
            if len(raw) == 10:
                return date.fromisoformat(raw)
            if raw.endswith("Z"):
                raw = raw[:-1] + "+00:00"
            return datetime.fromisoformat(raw)
        except ValueError:
            pass
    raise InvalidTimeValueError(value)


# ===== SCHEMA DEFINITIONS =====


@dataclass(frozen=True)
class MeasureDefinition:
    """A named aggregation computed from one source table."""

    name: str
    aggregation: AggregationType
    expression: str
    table: str
    description: str

    @property
    def alias(self) -> str:
        return member_alias(self.name)


@dataclass(frozen=True)
class DimensionDefinition:
    """A named grouping/filtering key drawn from one source table."""

    name: str
    kind: DimensionKind
    expression: str
    table: str
    description: str
    # Pre-bucketed time dimensions (e.g. time.week) carry their own granularity
    granularity: Optional[Granularity] = None

    @property
    def alias(self) -> str:
        return member_alias(self.name)

    def is_time(self) -> bool:
        return self.kind == DimensionKind.TIME


# ===== REQUEST TYPES =====


@dataclass(frozen=True)
class FilterClause:
    """Restricts rows on one dimension. Values are passed through untyped."""

    dimension: str
    operator: FilterOperator
    values: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class TimeDimensionClause:
    """Buckets a time dimension, optionally restricted to an inclusive range."""

    dimension: str
    granularity: Granularity
    date_range: Optional[Tuple[Any, Any]] = None

    def bounds(self) -> Optional[Tuple[Union[date, datetime], Union[date, datetime]]]:
        """The date range parsed into date/datetime values, or None without a range."""
        if self.date_range is None:
            return None
        start, end = self.date_range
        return parse_time_value(start), parse_time_value(end)


@dataclass(frozen=True)
class OrderClause:
    member: str
    direction: OrderDirection = OrderDirection.ASC


@dataclass(frozen=True)
class QueryRequest:
    """A validated, ephemeral analytics request."""

    measures: Tuple[str, ...] = ()
    dimensions: Tuple[str, ...] = ()
    filters: Tuple[FilterClause, ...] = ()
    time_dimension: Optional[TimeDimensionClause] = None
    order: Tuple[OrderClause, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None

    def is_empty(self) -> bool:
        return not self.measures and not self.dimensions and self.time_dimension is None


# ===== COMPILER OUTPUT =====


@dataclass(frozen=True)
class JoinFragment:
    """One LEFT JOIN step of a join plan."""

    table: str
    alias: str
    condition: str
    join_type: str = "LEFT JOIN"

    def render(self) -> str:
        return f"{self.join_type} {self.table} {self.alias} ON {self.condition}"


@dataclass(frozen=True)
class JoinPlan:
    """Primary table plus the ordered joins needed to reach every required table."""

    primary_table: str
    primary_alias: str
    joins: Tuple[JoinFragment, ...] = ()

    @property
    def joined_tables(self) -> List[str]:
        return [join.table for join in self.joins]

    def render(self) -> str:
        parts = [f"{self.primary_table} {self.primary_alias}"]
        parts.extend(join.render() for join in self.joins)
        return " ".join(parts)


@dataclass(frozen=True)
class SelectItem:
    expression: str
    alias: str

    def render(self) -> str:
        return f'{self.expression} AS "{self.alias}"'


@dataclass(frozen=True)
class CompiledQuery:
    """The fully assembled query handed to the storage connector.

    `sql` carries only `:name` placeholders; the values travel separately in
    `params` and are bound by the connector.
    """

    select: Tuple[SelectItem, ...]
    from_clause: str
    where: str = ""
    group_by: Tuple[str, ...] = ()
    order_by: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    params: Tuple[Tuple[str, Any], ...] = ()
    join_plan: Optional[JoinPlan] = field(default=None, compare=False)

    @property
    def columns(self) -> List[str]:
        return [item.alias for item in self.select]

    @property
    def parameters(self) -> Dict[str, Any]:
        return dict(self.params)

    @property
    def sql(self) -> str:
        query = f"SELECT {', '.join(item.render() for item in self.select)} FROM {self.from_clause}"

        if self.where:
            query += f" WHERE {self.where}"

        if self.group_by:
            query += f" GROUP BY {', '.join(self.group_by)}"

        if self.order_by:
            query += f" ORDER BY {', '.join(self.order_by)}"

        if self.limit is not None:
            query += f" LIMIT {self.limit}"
            if self.offset is not None:
                query += f" OFFSET {self.offset}"

        return query
