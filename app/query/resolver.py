# app/query/resolver.py
"""Table dependency resolution: which tables a request touches and how to join them."""

import logging
from typing import Dict, Iterable, List, Set, Tuple

from .errors import UnreachableJoinError
from .registry import SchemaRegistry
from .schemas import JoinFragment, JoinPlan, QueryRequest

logger = logging.getLogger(__name__)


TABLE_ALIASES: Dict[str, str] = {
    "events": "e",
    "sessions": "s",
    "users": "u",
    "quizzes": "q",
    "content": "c",
    "schools": "sch",
    "classrooms": "cl",
    "quiz_sessions": "qs",
    "user_classrooms": "uc",
}

# Most granular tables first; the first one a request needs becomes the FROM table
PRIMARY_TABLE_PRIORITY: Tuple[str, ...] = (
    "events",
    "sessions",
    "quiz_sessions",
    "users",
    "quizzes",
    "content",
    "schools",
    "classrooms",
)

FALLBACK_TABLE = "events"


def _step(table: str, condition: str) -> JoinFragment:
    return JoinFragment(table=table, alias=TABLE_ALIASES[table], condition=condition)


# primary table -> {reachable table -> ordered join steps}.
# Declaration order is join order; multi-hop paths repeat their intermediate step
# and the resolver joins it only once.
TABLE_RELATIONSHIPS: Dict[str, Dict[str, Tuple[JoinFragment, ...]]] = {
    "events": {
        "users": (_step("users", "e.user_id = u.id"),),
        "sessions": (_step("sessions", "e.session_id = s.id"),),
        "classrooms": (_step("classrooms", "e.classroom_id = cl.id"),),
        "schools": (_step("schools", "e.school_id = sch.id"),),
    },
    "sessions": {
        "users": (_step("users", "s.user_id = u.id"),),
        "classrooms": (_step("classrooms", "s.classroom_id = cl.id"),),
        "schools": (
            _step("classrooms", "s.classroom_id = cl.id"),
            _step("schools", "cl.school_id = sch.id"),
        ),
    },
    "quiz_sessions": {
        "quizzes": (_step("quizzes", "qs.quiz_id = q.id"),),
        "users": (_step("users", "qs.student_id = u.id"),),
        "classrooms": (
            _step("quizzes", "qs.quiz_id = q.id"),
            _step("classrooms", "q.classroom_id = cl.id"),
        ),
        "schools": (
            _step("quizzes", "qs.quiz_id = q.id"),
            _step("classrooms", "q.classroom_id = cl.id"),
            _step("schools", "cl.school_id = sch.id"),
        ),
    },
    "users": {
        "schools": (_step("schools", "u.school_id = sch.id"),),
        "classrooms": (
            _step("user_classrooms", "u.id = uc.user_id"),
            _step("classrooms", "uc.classroom_id = cl.id"),
        ),
    },
    "quizzes": {
        "users": (_step("users", "q.creator_id = u.id"),),
        "classrooms": (_step("classrooms", "q.classroom_id = cl.id"),),
        "schools": (
            _step("classrooms", "q.classroom_id = cl.id"),
            _step("schools", "cl.school_id = sch.id"),
        ),
    },
    "content": {
        "users": (_step("users", "c.creator_id = u.id"),),
        "classrooms": (_step("classrooms", "c.classroom_id = cl.id"),),
        "schools": (
            _step("classrooms", "c.classroom_id = cl.id"),
            _step("schools", "cl.school_id = sch.id"),
        ),
    },
    "schools": {
        "classrooms": (_step("classrooms", "cl.school_id = sch.id"),),
    },
    "classrooms": {},
}


class TableDependencyResolver:
    """Builds the FROM/JOIN plan for a request from the declarative relationship map."""

    def __init__(
        self,
        registry: SchemaRegistry,
        relationships: Dict[str, Dict[str, Tuple[JoinFragment, ...]]] = TABLE_RELATIONSHIPS,
        priority: Iterable[str] = PRIMARY_TABLE_PRIORITY,
    ):
        self.registry = registry
        self.relationships = relationships
        self.priority = tuple(priority)

    def required_tables(self, request: QueryRequest) -> Set[str]:
        """Owning tables of every member the request selects, filters on or buckets by."""
        tables: Set[str] = set()
        for name in request.measures:
            tables.add(self.registry.lookup_measure(name).table)
        for name in request.dimensions:
            tables.add(self.registry.lookup_dimension(name).table)
        for clause in request.filters:
            tables.add(self.registry.lookup_dimension(clause.dimension).table)
        if request.time_dimension is not None:
            tables.add(self.registry.lookup_dimension(request.time_dimension.dimension).table)
        return tables

    def select_primary_table(self, tables: Set[str]) -> str:
        for table in self.priority:
            if table in tables:
                return table
        return FALLBACK_TABLE

    def resolve(self, request: QueryRequest) -> JoinPlan:
        tables = self.required_tables(request)
        primary = self.select_primary_table(tables)
        primary_alias = TABLE_ALIASES[primary]
        reachable = self.relationships.get(primary, {})

        for table in sorted(tables):
            if table != primary and table not in reachable:
                raise UnreachableJoinError(primary, table)

        joins: List[JoinFragment] = []
        joined_aliases = {primary_alias}
        for table, steps in reachable.items():
            if table not in tables:
                continue
            for step in steps:
                if step.alias in joined_aliases:
                    continue
                joins.append(step)
                joined_aliases.add(step.alias)

        plan = JoinPlan(primary_table=primary, primary_alias=primary_alias, joins=tuple(joins))
        logger.debug("Resolved join plan: %s", plan.render())
        return plan
