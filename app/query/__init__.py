"""
Query module for the analytics system.

This module compiles declarative analytics requests into parameterized SQL:
- Immutable schema registry of measures and dimensions
- Join planning from a declarative table relationship map
- Filter predicates with bound parameters
- Dialect-aware time bucketing

Main Components:
- QueryCompiler: validates a QueryRequest and assembles a CompiledQuery
- SchemaRegistry: catalogue of measures and dimensions
- Schemas: request, plan and output types
- Errors: typed compilation errors
"""

from .compiler import QueryCompiler, compile_query
from .errors import (
    ArityError,
    DuplicateIdentifierError,
    EmptySelectionError,
    InvalidOrderDirectionError,
    InvalidOrderError,
    InvalidTimeValueError,
    InvalidTimeDimensionError,
    QueryCompilationError,
    UnknownIdentifierError,
    UnreachableJoinError,
    UnsupportedDialectError,
    UnsupportedGranularityError,
    UnsupportedOperatorError,
)
from .registry import SchemaRegistry, build_default_registry, get_default_registry
from .schemas import (
    # Core types
    QueryRequest,
    CompiledQuery,
    JoinPlan,
    # Clauses
    FilterClause,
    TimeDimensionClause,
    OrderClause,
    # Definitions
    MeasureDefinition,
    DimensionDefinition,
    # Enums
    AggregationType,
    DimensionKind,
    FilterOperator,
    Granularity,
    OrderDirection,
)

__all__ = [
    # Main classes
    "QueryCompiler",
    "compile_query",
    "SchemaRegistry",
    "build_default_registry",
    "get_default_registry",
    # Core types
    "QueryRequest",
    "CompiledQuery",
    "JoinPlan",
    "FilterClause",
    "TimeDimensionClause",
    "OrderClause",
    "MeasureDefinition",
    "DimensionDefinition",
    # Enums
    "AggregationType",
    "DimensionKind",
    "FilterOperator",
    "Granularity",
    "OrderDirection",
    # Errors
    "QueryCompilationError",
    "UnknownIdentifierError",
    "DuplicateIdentifierError",
    "ArityError",
    "UnsupportedOperatorError",
    "UnsupportedGranularityError",
    "InvalidOrderDirectionError",
    "InvalidOrderError",
    "InvalidTimeValueError",
    "InvalidTimeDimensionError",
    "UnreachableJoinError",
    "EmptySelectionError",
    "UnsupportedDialectError",
]
