# app/query/errors.py
"""Compilation errors raised by the analytics query compiler.

Every error here describes a problem with the incoming request (a client-input
problem). They are raised before any clause is rendered, so a caller never sees a
partially compiled query.
"""

from typing import Any, Dict, Optional


class QueryCompilationError(Exception):
    """Base class for all query compilation failures."""

    code = "QUERY_COMPILATION_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API error responses."""
        return {"code": self.code, "message": self.message, "details": self.details}


class UnknownIdentifierError(QueryCompilationError):
    """A measure or dimension name that is not in the schema registry."""

    code = "UNKNOWN_IDENTIFIER"

    def __init__(self, identifier: str, kind: str = "member"):
        super().__init__(f"Unknown {kind}: {identifier}", {"identifier": identifier, "kind": kind})
        self.identifier = identifier
        self.kind = kind


class DuplicateIdentifierError(QueryCompilationError):
    """The same measure or dimension was requested twice."""

    code = "DUPLICATE_IDENTIFIER"

    def __init__(self, identifier: str, kind: str = "member"):
        super().__init__(f"Duplicate {kind}: {identifier}", {"identifier": identifier, "kind": kind})
        self.identifier = identifier
        self.kind = kind


class ArityError(QueryCompilationError):
    """A filter operator received the wrong number of values."""

    code = "ARITY_ERROR"

    def __init__(self, operator: str, expected: str, received: int):
        super().__init__(
            f"Operator '{operator}' expects {expected} value(s), got {received}",
            {"operator": operator, "expected": expected, "received": received},
        )
        self.operator = operator
        self.expected = expected
        self.received = received


class UnsupportedOperatorError(QueryCompilationError):
    code = "UNSUPPORTED_OPERATOR"

    def __init__(self, operator: Any):
        super().__init__(f"Unsupported operator: {operator}", {"operator": operator})
        self.operator = operator


class UnsupportedGranularityError(QueryCompilationError):
    code = "UNSUPPORTED_GRANULARITY"

    def __init__(self, granularity: Any):
        super().__init__(f"Unsupported time granularity: {granularity}", {"granularity": granularity})
        self.granularity = granularity


class InvalidOrderDirectionError(QueryCompilationError):
    code = "INVALID_ORDER_DIRECTION"

    def __init__(self, direction: Any):
        super().__init__(f"Invalid order direction: {direction}", {"direction": direction})
        self.direction = direction


class InvalidOrderError(QueryCompilationError):
    """An order member that is neither selected nor the time bucket."""

    code = "INVALID_ORDER"

    def __init__(self, member: str):
        super().__init__(
            f"Cannot order by '{member}': it is not part of the selection",
            {"member": member},
        )
        self.member = member


class InvalidTimeDimensionError(QueryCompilationError):
    code = "INVALID_TIME_DIMENSION"

    def __init__(self, dimension: str, kind: str):
        super().__init__(
            f"Dimension '{dimension}' is of kind '{kind}', a time dimension is required",
            {"dimension": dimension, "kind": kind},
        )
        self.dimension = dimension
        self.kind = kind


class UnreachableJoinError(QueryCompilationError):
    """No known relationship leads from the primary table to a required table."""

    code = "UNREACHABLE_JOIN"

    def __init__(self, primary_table: str, table: str):
        super().__init__(
            f"Table '{table}' cannot be joined from primary table '{primary_table}'",
            {"primary_table": primary_table, "table": table},
        )
        self.primary_table = primary_table
        self.table = table


class EmptySelectionError(QueryCompilationError):
    code = "EMPTY_SELECTION"

    def __init__(self):
        super().__init__("Query must select at least one measure, dimension or time dimension")


class UnsupportedDialectError(QueryCompilationError):
    code = "UNSUPPORTED_DIALECT"

    def __init__(self, dialect: str):
        super().__init__(f"Unsupported SQL dialect: {dialect}", {"dialect": dialect})
        self.dialect = dialect


class InvalidTimeValueError(QueryCompilationError):
    """A date range bound or time filter value that is not an ISO date or timestamp."""

    code = "INVALID_TIME_VALUE"

    def __init__(self, value: Any):
        super().__init__(f"Invalid date or timestamp: {value}", {"value": value})
        self.value = value
