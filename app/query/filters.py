# app/query/filters.py
"""Filter compilation to placeholder predicates with separately bound values."""

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import ArityError
from .granularity import BUCKET_FORMAT, GranularityCompiler, bucket_start
from .registry import SchemaRegistry
from .schemas import FilterClause, FilterOperator, Granularity, TimeDimensionClause, parse_time_value

LIKE_ESCAPE = "\\"


class ParameterCollector:
    """Hands out sequential placeholder names (p0, p1, ...) for one compilation."""

    def __init__(self, prefix: str = "p"):
        self.prefix = prefix
        self._params: List[Tuple[str, Any]] = []

    def add(self, value: Any) -> str:
        name = f"{self.prefix}{len(self._params)}"
        self._params.append((name, value))
        return f":{name}"

    @property
    def params(self) -> Tuple[Tuple[str, Any], ...]:
        return tuple(self._params)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._params)


def escape_like(value: Any) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    text_value = str(value)
    for char in (LIKE_ESCAPE, "%", "_"):
        text_value = text_value.replace(char, LIKE_ESCAPE + char)
    return text_value


def check_arity(clause: FilterClause) -> None:
    """Raise ArityError when a clause has the wrong number of values for its operator."""
    operator = FilterOperator.parse(clause.operator)
    received = len(clause.values)
    if operator == FilterOperator.IN:
        if received < 1:
            raise ArityError(operator.value, "at least 1", received)
    elif received != 1:
        raise ArityError(operator.value, "exactly 1", received)


def format_timestamp(value: Union[date, datetime]) -> str:
    """Bind form of a range bound; same text shape SQLAlchemy stores DateTime in on SQLite."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    return value.isoformat(sep=" ", timespec="microseconds")


def bucket_value(value: Any, granularity: Granularity) -> str:
    """Normalize a filter value on a pre-bucketed dimension to its bucket start."""
    parsed = parse_time_value(value)
    if not isinstance(parsed, datetime):
        parsed = datetime.combine(parsed, time.min)
    return bucket_start(parsed, granularity).strftime(BUCKET_FORMAT)


class FilterCompiler:
    def __init__(self, registry: SchemaRegistry, granularity: Optional[GranularityCompiler] = None):
        self.registry = registry
        self.granularity = granularity or GranularityCompiler()

    def compile_filter(self, clause: FilterClause, collector: ParameterCollector) -> str:
        definition = self.registry.lookup_dimension(clause.dimension)
        expression = self.granularity.dimension_expression(definition)
        operator = FilterOperator.parse(clause.operator)
        check_arity(clause)

        if operator == FilterOperator.CONTAINS:
            placeholder = collector.add(f"%{escape_like(clause.values[0])}%")
            return f"LOWER({expression}) LIKE LOWER({placeholder}) ESCAPE '{LIKE_ESCAPE}'"

        values = clause.values
        if definition.is_time() and definition.granularity is not None:
            # Compared against the truncated expression, so values become bucket starts too
            values = tuple(bucket_value(value, definition.granularity) for value in values)

        if operator == FilterOperator.IN:
            placeholders = ", ".join(collector.add(value) for value in values)
            return f"{expression} IN ({placeholders})"

        return f"{expression} {operator.sql} {collector.add(values[0])}"

    def compile_date_range(
        self, time_dimension: TimeDimensionClause, collector: ParameterCollector
    ) -> Optional[str]:
        """Inclusive range over the raw, untruncated time expression.

        A date-only upper bound covers that whole day: it is rendered as `< next day`.
        """
        bounds = time_dimension.bounds()
        if bounds is None:
            return None
        expression = self.registry.lookup_dimension(time_dimension.dimension).expression
        start, end = bounds

        lower = f"{expression} >= {collector.add(format_timestamp(start))}"
        if isinstance(end, datetime):
            upper = f"{expression} <= {collector.add(format_timestamp(end))}"
        else:
            upper = f"{expression} < {collector.add(format_timestamp(end + timedelta(days=1)))}"
        return f"{lower} AND {upper}"

    def compile(
        self,
        filters: Tuple[FilterClause, ...],
        collector: ParameterCollector,
        time_dimension: Optional[TimeDimensionClause] = None,
    ) -> List[str]:
        """Predicates in clause order, date range last. The caller ANDs them."""
        predicates = [self.compile_filter(clause, collector) for clause in filters]
        if time_dimension is not None:
            date_range = self.compile_date_range(time_dimension, collector)
            if date_range:
                predicates.append(date_range)
        return predicates
