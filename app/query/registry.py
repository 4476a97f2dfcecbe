# app/query/registry.py
"""Schema registry: the catalogue of measures and dimensions the analytics API exposes.

The registry is built once from fixed definition lists and never mutated
afterwards, so any number of compilations can share it without locking.
Expressions are qualified with the table aliases used by the join resolver
(see app/query/resolver.py).
"""

from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping

from .errors import UnknownIdentifierError
from .schemas import (
    AggregationType,
    DimensionDefinition,
    DimensionKind,
    Granularity,
    MeasureDefinition,
)


class SchemaRegistry:
    """Immutable lookup table of measure and dimension definitions."""

    def __init__(
        self,
        measures: Iterable[MeasureDefinition],
        dimensions: Iterable[DimensionDefinition],
    ):
        self._measures: Mapping[str, MeasureDefinition] = MappingProxyType(
            self._index(measures, "measure")
        )
        self._dimensions: Mapping[str, DimensionDefinition] = MappingProxyType(
            self._index(dimensions, "dimension")
        )

    @staticmethod
    def _index(definitions: Iterable[Any], kind: str) -> Dict[str, Any]:
        index: Dict[str, Any] = {}
        for definition in definitions:
            if definition.name in index:
                raise ValueError(f"Duplicate {kind} definition: {definition.name}")
            index[definition.name] = definition
        return index

    # ===== LOOKUPS =====

    def lookup_measure(self, name: str) -> MeasureDefinition:
        try:
            return self._measures[name]
        except KeyError:
            raise UnknownIdentifierError(name, "measure") from None

    def lookup_dimension(self, name: str) -> DimensionDefinition:
        try:
            return self._dimensions[name]
        except KeyError:
            raise UnknownIdentifierError(name, "dimension") from None

    def has_measure(self, name: str) -> bool:
        return name in self._measures

    def has_dimension(self, name: str) -> bool:
        return name in self._dimensions

    # ===== INTROSPECTION =====

    def measures(self) -> List[MeasureDefinition]:
        return [self._measures[name] for name in sorted(self._measures)]

    def dimensions(self) -> List[DimensionDefinition]:
        return [self._dimensions[name] for name in sorted(self._dimensions)]

    def tables(self) -> List[str]:
        """All source tables referenced by the catalogue."""
        tables = {m.table for m in self._measures.values()}
        tables.update(d.table for d in self._dimensions.values())
        return sorted(tables)

    def describe(self) -> Dict[str, List[Dict[str, Any]]]:
        """Catalogue as plain dicts for client discovery."""
        return {
            "measures": [
                {
                    "name": m.name,
                    "type": m.aggregation.value,
                    "table": m.table,
                    "description": m.description,
                }
                for m in self.measures()
            ],
            "dimensions": [
                {
                    "name": d.name,
                    "type": d.kind.value,
                    "table": d.table,
                    "description": d.description,
                    "granularity": d.granularity.value if d.granularity else None,
                }
                for d in self.dimensions()
            ],
        }


# ===== DEFAULT CATALOGUE =====

DEFAULT_MEASURES = (
    # Event measures
    MeasureDefinition(
        name="events.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(e.id)",
        table="events",
        description="Total number of events",
    ),
    MeasureDefinition(
        name="events.unique_users",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT e.user_id)",
        table="events",
        description="Number of unique users generating events",
    ),
    # Session measures
    MeasureDefinition(
        name="sessions.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT s.id)",
        table="sessions",
        description="Total number of sessions",
    ),
    MeasureDefinition(
        name="sessions.avg_duration",
        aggregation=AggregationType.AVG,
        expression="AVG(s.duration_seconds / 60.0)",
        table="sessions",
        description="Average session duration in minutes",
    ),
    MeasureDefinition(
        name="sessions.total_duration",
        aggregation=AggregationType.SUM,
        expression="SUM(s.duration_seconds / 60.0)",
        table="sessions",
        description="Total session duration in minutes",
    ),
    # User measures
    MeasureDefinition(
        name="users.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT u.id)",
        table="users",
        description="Total number of users",
    ),
    MeasureDefinition(
        name="users.active_count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT CASE WHEN u.last_active IS NOT NULL THEN u.id END)",
        table="users",
        description="Number of active users (with recorded activity)",
    ),
    # Quiz measures
    MeasureDefinition(
        name="quizzes.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT q.id)",
        table="quizzes",
        description="Total number of quizzes",
    ),
    MeasureDefinition(
        name="quiz_sessions.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT qs.id)",
        table="quiz_sessions",
        description="Total number of quiz attempts",
    ),
    MeasureDefinition(
        name="quiz_sessions.avg_score",
        aggregation=AggregationType.AVG,
        expression="AVG(qs.percentage_score)",
        table="quiz_sessions",
        description="Average quiz score percentage",
    ),
    MeasureDefinition(
        name="quiz_sessions.completion_rate",
        aggregation=AggregationType.AVG,
        expression="AVG(CASE WHEN qs.is_completed THEN 1.0 ELSE 0.0 END) * 100",
        table="quiz_sessions",
        description="Quiz completion rate percentage",
    ),
    # Content measures
    MeasureDefinition(
        name="content.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT c.id)",
        table="content",
        description="Total number of content items",
    ),
    MeasureDefinition(
        name="content.avg_file_size",
        aggregation=AggregationType.AVG,
        expression="AVG(c.file_size_bytes / 1024.0 / 1024.0)",
        table="content",
        description="Average content file size in MB",
    ),
    # School/Classroom measures
    MeasureDefinition(
        name="classrooms.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT cl.id)",
        table="classrooms",
        description="Number of classrooms",
    ),
    MeasureDefinition(
        name="schools.count",
        aggregation=AggregationType.COUNT,
        expression="COUNT(DISTINCT sch.id)",
        table="schools",
        description="Number of schools",
    ),
)

DEFAULT_DIMENSIONS = (
    # Time dimensions
    DimensionDefinition(
        name="time.date",
        kind=DimensionKind.TIME,
        expression="e.timestamp",
        table="events",
        description="Date of the event",
        granularity=Granularity.DAY,
    ),
    DimensionDefinition(
        name="time.hour",
        kind=DimensionKind.TIME,
        expression="e.timestamp",
        table="events",
        description="Hour of the event",
        granularity=Granularity.HOUR,
    ),
    DimensionDefinition(
        name="time.week",
        kind=DimensionKind.TIME,
        expression="e.timestamp",
        table="events",
        description="Week of the event",
        granularity=Granularity.WEEK,
    ),
    DimensionDefinition(
        name="time.month",
        kind=DimensionKind.TIME,
        expression="e.timestamp",
        table="events",
        description="Month of the event",
        granularity=Granularity.MONTH,
    ),
    DimensionDefinition(
        name="events.timestamp",
        kind=DimensionKind.TIME,
        expression="e.timestamp",
        table="events",
        description="Time the event occurred",
    ),
    DimensionDefinition(
        name="sessions.start_time",
        kind=DimensionKind.TIME,
        expression="s.start_time",
        table="sessions",
        description="Time the session started",
    ),
    DimensionDefinition(
        name="quiz_sessions.started_at",
        kind=DimensionKind.TIME,
        expression="qs.started_at",
        table="quiz_sessions",
        description="Time the quiz attempt started",
    ),
    # User dimensions
    DimensionDefinition(
        name="users.role",
        kind=DimensionKind.STRING,
        expression="u.role",
        table="users",
        description="User role (teacher, student, admin)",
    ),
    DimensionDefinition(
        name="users.school_id",
        kind=DimensionKind.STRING,
        expression="CAST(u.school_id AS TEXT)",
        table="users",
        description="School identifier",
    ),
    # Event dimensions
    DimensionDefinition(
        name="events.type",
        kind=DimensionKind.STRING,
        expression="e.event_type",
        table="events",
        description="Type of event",
    ),
    DimensionDefinition(
        name="events.application",
        kind=DimensionKind.STRING,
        expression="e.application",
        table="events",
        description="Application source (whiteboard, notebook)",
    ),
    # Session dimensions
    DimensionDefinition(
        name="sessions.application",
        kind=DimensionKind.STRING,
        expression="s.application",
        table="sessions",
        description="Session application type",
    ),
    # Content dimensions
    DimensionDefinition(
        name="content.type",
        kind=DimensionKind.STRING,
        expression="c.content_type",
        table="content",
        description="Type of content",
    ),
    # School/Classroom dimensions
    DimensionDefinition(
        name="schools.name",
        kind=DimensionKind.STRING,
        expression="sch.name",
        table="schools",
        description="School name",
    ),
    DimensionDefinition(
        name="schools.region",
        kind=DimensionKind.STRING,
        expression="sch.region",
        table="schools",
        description="School region",
    ),
    DimensionDefinition(
        name="classrooms.name",
        kind=DimensionKind.STRING,
        expression="cl.name",
        table="classrooms",
        description="Classroom name",
    ),
    DimensionDefinition(
        name="classrooms.grade_level",
        kind=DimensionKind.NUMBER,
        expression="cl.grade_level",
        table="classrooms",
        description="Classroom grade level",
    ),
    DimensionDefinition(
        name="classrooms.subject",
        kind=DimensionKind.STRING,
        expression="cl.subject",
        table="classrooms",
        description="Classroom subject",
    ),
)


def build_default_registry() -> SchemaRegistry:
    return SchemaRegistry(DEFAULT_MEASURES, DEFAULT_DIMENSIONS)


@lru_cache(maxsize=1)
def get_default_registry() -> SchemaRegistry:
    """Process-wide registry, built on first use and shared by every compiler."""
    return build_default_registry()
