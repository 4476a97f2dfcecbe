# app/query/compiler.py
"""
QueryCompiler: turns a declarative analytics request into parameterized SQL.

This is the single code path for both SQL preview and execution. The request is
fully validated against the schema registry first; only then are the join plan,
filter predicates and time buckets rendered and assembled into a CompiledQuery.
Filter values never enter the SQL text, they travel as bound parameters.
"""

import logging
from typing import List, Optional, Set

from .errors import (
    DuplicateIdentifierError,
    EmptySelectionError,
    InvalidOrderError,
    InvalidTimeDimensionError,
    UnknownIdentifierError,
)
from .filters import FilterCompiler, ParameterCollector, check_arity
from .granularity import GranularityCompiler
from .registry import SchemaRegistry, get_default_registry
from .resolver import TableDependencyResolver
from .schemas import (
    CompiledQuery,
    FilterOperator,
    OrderClause,
    OrderDirection,
    QueryRequest,
    SelectItem,
    member_alias,
    parse_time_value,
)

logger = logging.getLogger(__name__)

TIME_ALIAS = "time"


class QueryCompiler:
    """
    Compiles QueryRequest objects for one SQL dialect.

    The compiler keeps no per-request state; every call to compile() gets its own
    parameter collector, so one instance can be shared across requests and threads.
    """

    def __init__(self, registry: Optional[SchemaRegistry] = None, dialect: str = "postgresql"):
        self.registry = registry or get_default_registry()
        self.granularity = GranularityCompiler(dialect)
        self.dialect = self.granularity.dialect
        self.resolver = TableDependencyResolver(self.registry)
        self.filters = FilterCompiler(self.registry, self.granularity)

    def compile(self, request: QueryRequest) -> CompiledQuery:
        self.validate(request)

        join_plan = self.resolver.resolve(request)

        collector = ParameterCollector()
        predicates = self.filters.compile(request.filters, collector, request.time_dimension)

        time_expression = None
        if request.time_dimension is not None:
            definition = self.registry.lookup_dimension(request.time_dimension.dimension)
            time_expression = self.granularity.truncate(
                definition.expression, request.time_dimension.granularity
            )

        select: List[SelectItem] = []
        group_by: List[str] = []

        for name in request.measures:
            measure = self.registry.lookup_measure(name)
            select.append(SelectItem(measure.expression, measure.alias))

        for name in request.dimensions:
            dimension = self.registry.lookup_dimension(name)
            expression = self.granularity.dimension_expression(dimension)
            select.append(SelectItem(expression, dimension.alias))
            if expression not in group_by:
                group_by.append(expression)

        if time_expression is not None:
            select.append(SelectItem(time_expression, TIME_ALIAS))
            if time_expression not in group_by:
                group_by.append(time_expression)

        compiled = CompiledQuery(
            select=tuple(select),
            from_clause=join_plan.render(),
            where=" AND ".join(predicates),
            group_by=tuple(group_by),
            order_by=tuple(self._order_by(request)),
            limit=request.limit,
            offset=request.offset,
            params=collector.params,
            join_plan=join_plan,
        )
        logger.debug("Compiled analytics query (%s): %s", self.dialect, compiled.sql)
        return compiled

    # ===== VALIDATION =====

    def validate(self, request: QueryRequest) -> None:
        """Raise the first problem found in the request; nothing is rendered here."""
        if request.is_empty():
            raise EmptySelectionError()

        self._check_unique(request.measures, "measure")
        self._check_unique(request.dimensions, "dimension")

        for name in request.measures:
            self.registry.lookup_measure(name)
        for name in request.dimensions:
            self.registry.lookup_dimension(name)

        for clause in request.filters:
            definition = self.registry.lookup_dimension(clause.dimension)
            operator = FilterOperator.parse(clause.operator)
            check_arity(clause)
            if definition.granularity is not None and operator != FilterOperator.CONTAINS:
                for value in clause.values:
                    parse_time_value(value)

        if request.time_dimension is not None:
            definition = self.registry.lookup_dimension(request.time_dimension.dimension)
            if not definition.is_time():
                raise InvalidTimeDimensionError(definition.name, definition.kind.value)
            request.time_dimension.bounds()

        selected = set(request.measures) | set(request.dimensions)
        if request.time_dimension is not None:
            selected.add(TIME_ALIAS)
        for clause in request.order:
            self._check_order(clause, selected)
            OrderDirection.parse(clause.direction)

    @staticmethod
    def _check_unique(names, kind: str) -> None:
        seen: Set[str] = set()
        for name in names:
            if name in seen:
                raise DuplicateIdentifierError(name, kind)
            seen.add(name)

    def _check_order(self, clause: OrderClause, selected: Set[str]) -> None:
        if clause.member in selected:
            return
        known = (
            clause.member == TIME_ALIAS
            or self.registry.has_measure(clause.member)
            or self.registry.has_dimension(clause.member)
        )
        if known:
            raise InvalidOrderError(clause.member)
        raise UnknownIdentifierError(clause.member, "order member")

    # ===== RENDERING HELPERS =====

    def _order_by(self, request: QueryRequest) -> List[str]:
        if request.order:
            order_by = []
            for clause in request.order:
                alias = TIME_ALIAS if clause.member == TIME_ALIAS else member_alias(clause.member)
                direction = OrderDirection.parse(clause.direction).value.upper()
                order_by.append(f'"{alias}" {direction}')
            return order_by
        if request.time_dimension is not None:
            return [f'"{TIME_ALIAS}" ASC']
        return []


def compile_query(request: QueryRequest, dialect: str = "postgresql") -> CompiledQuery:
    """Compile with the default registry."""
    return QueryCompiler(get_default_registry(), dialect).compile(request)
