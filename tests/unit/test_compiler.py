"""
Unit tests for the QueryCompiler: validation, assembly order and determinism.
"""

from datetime import date, datetime

import pytest
from sqlalchemy import text

from app.datawarehouse.models import Event
from app.query import (
    CompiledQuery,
    FilterClause,
    FilterOperator,
    Granularity,
    OrderClause,
    OrderDirection,
    QueryCompiler,
    QueryRequest,
    TimeDimensionClause,
    compile_query,
)
from app.query.errors import (
    ArityError,
    DuplicateIdentifierError,
    EmptySelectionError,
    InvalidOrderError,
    InvalidTimeDimensionError,
    InvalidTimeValueError,
    UnknownIdentifierError,
    UnsupportedDialectError,
)


def full_request() -> QueryRequest:
    return QueryRequest(
        measures=("sessions.count",),
        dimensions=("users.role",),
        filters=(FilterClause("users.role", FilterOperator.EQ, ("student",)),),
        time_dimension=TimeDimensionClause("time.date", Granularity.DAY, ("2024-01-01", "2024-01-31")),
        order=(OrderClause("time", OrderDirection.ASC),),
        limit=100,
    )


class TestAssembly:

    def test_full_request(self, pg_compiler):
        compiled = pg_compiler.compile(full_request())
        assert compiled.sql == (
            'SELECT COUNT(DISTINCT s.id) AS "sessions_count", u.role AS "users_role", '
            "DATE_TRUNC('day', e.timestamp) AS \"time\" "
            "FROM events e LEFT JOIN users u ON e.user_id = u.id LEFT JOIN sessions s ON e.session_id = s.id "
            "WHERE u.role = :p0 AND e.timestamp >= :p1 AND e.timestamp < :p2 "
            "GROUP BY u.role, DATE_TRUNC('day', e.timestamp) "
            'ORDER BY "time" ASC '
            "LIMIT 100"
        )
        assert compiled.parameters == {
            "p0": "student",
            "p1": "2024-01-01 00:00:00.000000",
            "p2": "2024-02-01 00:00:00.000000",
        }
        assert compiled.columns == ["sessions_count", "users_role", "time"]
        assert compiled.join_plan.primary_table == "events"

    def test_measures_only_has_no_group_by(self, pg_compiler):
        compiled = pg_compiler.compile(QueryRequest(measures=("sessions.count",)))
        assert compiled.sql == 'SELECT COUNT(DISTINCT s.id) AS "sessions_count" FROM sessions s'
        assert "GROUP BY" not in compiled.sql
        assert len(compiled.select) == 1
        assert compiled.params == ()

    def test_dimensions_only(self, pg_compiler):
        compiled = pg_compiler.compile(QueryRequest(dimensions=("schools.region",)))
        assert compiled.sql == 'SELECT sch.region AS "schools_region" FROM schools sch GROUP BY sch.region'

    def test_default_order_is_time_ascending(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                time_dimension=TimeDimensionClause("events.timestamp", Granularity.MONTH),
            )
        )
        assert compiled.order_by == ('"time" ASC',)
        assert compiled.sql.endswith("GROUP BY DATE_TRUNC('month', e.timestamp) ORDER BY \"time\" ASC")

    def test_no_order_without_time_dimension(self, pg_compiler):
        compiled = pg_compiler.compile(QueryRequest(measures=("events.count",), dimensions=("events.type",)))
        assert "ORDER BY" not in compiled.sql

    def test_order_by_dimension_keeps_single_group_by_entry(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("sessions.count",),
                dimensions=("users.role",),
                order=(OrderClause("users.role", OrderDirection.DESC), OrderClause("sessions.count")),
            )
        )
        assert compiled.group_by == ("u.role",)
        assert compiled.sql.count("GROUP BY u.role") == 1
        assert compiled.order_by == ('"users_role" DESC', '"sessions_count" ASC')

    def test_pre_bucketed_dimension_is_truncated(self, pg_compiler):
        compiled = pg_compiler.compile(QueryRequest(measures=("events.count",), dimensions=("time.week",)))
        assert compiled.select[1].render() == "DATE_TRUNC('week', e.timestamp) AS \"time_week\""
        assert compiled.group_by == ("DATE_TRUNC('week', e.timestamp)",)

    def test_identical_group_by_expressions_are_deduplicated(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                dimensions=("time.date",),
                time_dimension=TimeDimensionClause("time.date", Granularity.DAY),
            )
        )
        assert compiled.group_by == ("DATE_TRUNC('day', e.timestamp)",)

    def test_limit_and_offset(self, pg_compiler):
        compiled = pg_compiler.compile(QueryRequest(measures=("events.count",), limit=10, offset=20))
        assert compiled.sql.endswith("LIMIT 10 OFFSET 20")

    def test_offset_without_limit_is_not_rendered(self, pg_compiler):
        compiled = pg_compiler.compile(QueryRequest(measures=("events.count",), offset=20))
        assert "OFFSET" not in compiled.sql
        assert "LIMIT" not in compiled.sql

    def test_sqlite_dialect_uses_strftime(self, sqlite_compiler):
        compiled = sqlite_compiler.compile(
            QueryRequest(measures=("events.count",), time_dimension=TimeDimensionClause("time.date", Granularity.DAY))
        )
        assert "strftime('%Y-%m-%d 00:00:00', e.timestamp) AS \"time\"" in compiled.sql
        assert "DATE_TRUNC" not in compiled.sql

    def test_filter_values_never_in_sql(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("users.count",),
                filters=(
                    FilterClause("schools.name", FilterOperator.CONTAINS, ("O'Brien Academy",)),
                    FilterClause("users.role", FilterOperator.IN, ("student", "teacher")),
                ),
            )
        )
        assert "O'Brien" not in compiled.sql
        assert "student" not in compiled.sql
        assert compiled.parameters == {"p0": "%O'Brien Academy%", "p1": "student", "p2": "teacher"}


class TestDeterminism:

    def test_repeated_compilation_is_identical(self, pg_compiler):
        first = pg_compiler.compile(full_request())
        second = pg_compiler.compile(full_request())
        assert first.sql == second.sql
        assert first.params == second.params
        assert first == second

    def test_fresh_compilers_agree(self, registry):
        first = QueryCompiler(registry, "postgresql").compile(full_request())
        second = compile_query(full_request(), "postgresql")
        assert first.sql == second.sql
        assert first.parameters == second.parameters

    def test_parameter_numbering_restarts_per_compilation(self, pg_compiler):
        request = QueryRequest(
            measures=("events.count",),
            filters=(FilterClause("events.type", FilterOperator.EQ, ("stroke_added",)),),
        )
        pg_compiler.compile(request)
        assert list(pg_compiler.compile(request).parameters) == ["p0"]

    def test_compiled_query_is_immutable(self, pg_compiler):
        compiled = pg_compiler.compile(full_request())
        assert isinstance(compiled, CompiledQuery)
        with pytest.raises(AttributeError):
            compiled.limit = 5


class TestValidation:

    @pytest.mark.parametrize(
        "request_kwargs,identifier",
        [
            ({"measures": ("sessions.nope",)}, "sessions.nope"),
            ({"measures": ("sessions.count",), "dimensions": ("users.nope",)}, "users.nope"),
            (
                {
                    "measures": ("sessions.count",),
                    "filters": (FilterClause("schools.nope", FilterOperator.EQ, ("x",)),),
                },
                "schools.nope",
            ),
            (
                {
                    "measures": ("sessions.count",),
                    "time_dimension": TimeDimensionClause("time.nope", Granularity.DAY),
                },
                "time.nope",
            ),
            (
                {"measures": ("sessions.count",), "order": (OrderClause("sessions.nope"),)},
                "sessions.nope",
            ),
        ],
    )
    def test_unknown_identifier_names_exactly_that_identifier(self, pg_compiler, request_kwargs, identifier):
        with pytest.raises(UnknownIdentifierError) as exc_info:
            pg_compiler.compile(QueryRequest(**request_kwargs))
        assert exc_info.value.identifier == identifier

    def test_empty_selection(self, pg_compiler):
        with pytest.raises(EmptySelectionError):
            pg_compiler.compile(QueryRequest())

    def test_filters_alone_are_an_empty_selection(self, pg_compiler):
        with pytest.raises(EmptySelectionError):
            pg_compiler.compile(QueryRequest(filters=(FilterClause("users.role", FilterOperator.EQ, ("student",)),)))

    def test_duplicate_measure(self, pg_compiler):
        with pytest.raises(DuplicateIdentifierError) as exc_info:
            pg_compiler.compile(QueryRequest(measures=("events.count", "events.count")))
        assert exc_info.value.identifier == "events.count"

    def test_time_clause_on_non_time_dimension(self, pg_compiler):
        with pytest.raises(InvalidTimeDimensionError) as exc_info:
            pg_compiler.compile(
                QueryRequest(
                    measures=("events.count",),
                    time_dimension=TimeDimensionClause("users.role", Granularity.DAY),
                )
            )
        assert exc_info.value.dimension == "users.role"

    def test_order_by_unselected_member(self, pg_compiler):
        with pytest.raises(InvalidOrderError) as exc_info:
            pg_compiler.compile(QueryRequest(measures=("events.count",), order=(OrderClause("events.type"),)))
        assert exc_info.value.member == "events.type"

    def test_order_by_time_without_time_dimension(self, pg_compiler):
        with pytest.raises(InvalidOrderError):
            pg_compiler.compile(QueryRequest(measures=("events.count",), order=(OrderClause("time"),)))

    def test_arity_checked_before_rendering(self, pg_compiler):
        request = QueryRequest(
            measures=("events.count",),
            filters=(FilterClause("events.type", FilterOperator.IN, ()),),
        )
        with pytest.raises(ArityError):
            pg_compiler.compile(request)

    def test_unsupported_dialect(self, registry):
        with pytest.raises(UnsupportedDialectError):
            QueryCompiler(registry, dialect="mssql")


class TestExecutionOnSqlite:

    def test_daily_event_buckets(self, sqlite_compiler, dw_db_session, telemetry_data):
        compiled = sqlite_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                time_dimension=TimeDimensionClause("time.date", Granularity.DAY),
            )
        )
        rows = dw_db_session.execute(text(compiled.sql), compiled.parameters).mappings().all()
        assert [(row["time"], row["events_count"]) for row in rows] == [
            ("2024-01-15 00:00:00", 2),
            ("2024-01-16 00:00:00", 1),
        ]

    def test_student_sessions(self, sqlite_compiler, dw_db_session, telemetry_data):
        compiled = sqlite_compiler.compile(
            QueryRequest(
                measures=("sessions.count",),
                dimensions=("users.role",),
                filters=(FilterClause("users.role", FilterOperator.EQ, ("student",)),),
            )
        )
        assert compiled.sql == (
            'SELECT COUNT(DISTINCT s.id) AS "sessions_count", u.role AS "users_role" '
            "FROM sessions s LEFT JOIN users u ON s.user_id = u.id "
            "WHERE u.role = :p0 GROUP BY u.role"
        )
        rows = dw_db_session.execute(text(compiled.sql), compiled.parameters).mappings().all()
        assert [dict(row) for row in rows] == [{"sessions_count": 3, "users_role": "student"}]

    def test_date_only_range_keeps_the_whole_last_day(self, sqlite_compiler, dw_db_session):
        dw_db_session.add_all([
            Event(id="ev-jan-1", event_type="page_created", timestamp=datetime(2024, 1, 1, 9, 0)),
            Event(id="ev-jan-31", event_type="page_created", timestamp=datetime(2024, 1, 31, 10, 0)),
            Event(id="ev-feb-1", event_type="page_created", timestamp=datetime(2024, 2, 1, 0, 0)),
        ])
        dw_db_session.commit()

        compiled = sqlite_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                time_dimension=TimeDimensionClause("time.date", Granularity.DAY, ("2024-01-01", "2024-01-31")),
            )
        )
        rows = dw_db_session.execute(text(compiled.sql), compiled.parameters).mappings().all()
        assert [(row["time"], row["events_count"]) for row in rows] == [
            ("2024-01-01 00:00:00", 1),
            ("2024-01-31 00:00:00", 1),
        ]

    def test_timestamp_upper_bound_is_inclusive(self, sqlite_compiler, dw_db_session, telemetry_data):
        compiled = sqlite_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                time_dimension=TimeDimensionClause(
                    "events.timestamp", Granularity.DAY, ("2024-01-15", "2024-01-16 08:10:00")
                ),
            )
        )
        rows = dw_db_session.execute(text(compiled.sql), compiled.parameters).mappings().all()
        assert sum(row["events_count"] for row in rows) == 3

    @pytest.mark.parametrize(
        "dimension,value,expected",
        [
            ("time.date", "2024-01-15", 2),
            ("time.date", "2024-01-16T23:00:00", 1),
            # Wednesday 2024-01-17 falls in the week starting Monday 2024-01-15
            ("time.week", "2024-01-17", 3),
            ("time.month", "2024-01-31", 3),
            ("time.date", "2024-01-17", 0),
        ],
    )
    def test_filter_on_pre_bucketed_dimension(
        self, sqlite_compiler, dw_db_session, telemetry_data, dimension, value, expected
    ):
        compiled = sqlite_compiler.compile(
            QueryRequest(measures=("events.count",), filters=(FilterClause(dimension, FilterOperator.EQ, (value,)),))
        )
        row = dw_db_session.execute(text(compiled.sql), compiled.parameters).mappings().one()
        assert row["events_count"] == expected

    def test_in_filter_on_pre_bucketed_dimension(self, sqlite_compiler, dw_db_session, telemetry_data):
        compiled = sqlite_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                dimensions=("time.date",),
                filters=(FilterClause("time.date", FilterOperator.IN, ("2024-01-15", "2024-01-16")),),
                order=(OrderClause("time.date"),),
            )
        )
        rows = dw_db_session.execute(text(compiled.sql), compiled.parameters).mappings().all()
        assert [(row["time_date"], row["events_count"]) for row in rows] == [
            ("2024-01-15 00:00:00", 2),
            ("2024-01-16 00:00:00", 1),
        ]


class TestTimeValues:

    def test_filter_on_pre_bucketed_dimension_compares_buckets(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                filters=(FilterClause("time.date", FilterOperator.GTE, ("2024-01-15 13:20:00",)),),
            )
        )
        assert compiled.where == "DATE_TRUNC('day', e.timestamp) >= :p0"
        assert compiled.parameters == {"p0": "2024-01-15 00:00:00"}

    def test_raw_time_dimension_filter_is_untouched(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                filters=(FilterClause("events.timestamp", FilterOperator.LT, ("2024-01-15",)),),
            )
        )
        assert compiled.where == "e.timestamp < :p0"
        assert compiled.parameters == {"p0": "2024-01-15"}

    def test_timestamp_upper_bound_renders_inclusive_comparison(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                time_dimension=TimeDimensionClause(
                    "time.date", Granularity.DAY, ("2024-01-01", "2024-01-15T12:00:00")
                ),
            )
        )
        assert compiled.where == "e.timestamp >= :p0 AND e.timestamp <= :p1"
        assert compiled.parameters == {"p0": "2024-01-01 00:00:00.000000", "p1": "2024-01-15 12:00:00.000000"}

    def test_date_objects_are_accepted(self, pg_compiler):
        compiled = pg_compiler.compile(
            QueryRequest(
                measures=("events.count",),
                time_dimension=TimeDimensionClause("time.date", Granularity.DAY, (date(2024, 1, 1), date(2024, 12, 31))),
            )
        )
        assert compiled.parameters == {"p0": "2024-01-01 00:00:00.000000", "p1": "2025-01-01 00:00:00.000000"}

    @pytest.mark.parametrize(
        "request_kwargs,value",
        [
            (
                {"time_dimension": TimeDimensionClause("time.date", Granularity.DAY, ("2024-01-01", "next week"))},
                "next week",
            ),
            ({"filters": (FilterClause("time.week", FilterOperator.EQ, ("2024-13-01",)),)}, "2024-13-01"),
        ],
    )
    def test_invalid_time_value(self, pg_compiler, request_kwargs, value):
        with pytest.raises(InvalidTimeValueError) as exc_info:
            pg_compiler.compile(QueryRequest(measures=("events.count",), **request_kwargs))
        assert exc_info.value.value == value
