"""Pydantic schemas for the analytics API.

These models only check the shape of a request. Whether the names, operators
and granularities in it make sense is decided by the query compiler, which
reports problems as QueryCompilationError (HTTP 400) rather than 422.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.core.config import ANALYTICS_MAX_LIMIT
from app.query.schemas import (
    FilterClause,
    FilterOperator,
    Granularity,
    OrderClause,
    OrderDirection,
    QueryRequest,
    TimeDimensionClause,
)


# ===== REQUEST MODELS =====


class FilterModel(BaseModel):
    """A filter on one dimension.

    `member` is accepted for `dimension`; a single `value` (or a list under
    `value`) is accepted in place of `values`.
    """

    model_config = ConfigDict(populate_by_name=True)

    dimension: str = Field(validation_alias=AliasChoices("dimension", "member"))
    operator: str
    values: Optional[List[Any]] = None
    value: Optional[Any] = None

    def resolved_values(self) -> List[Any]:
        if self.values is not None:
            return list(self.values)
        if self.value is None:
            return []
        if isinstance(self.value, list):
            return list(self.value)
        return [self.value]

    def to_clause(self) -> FilterClause:
        return FilterClause(
            dimension=self.dimension,
            operator=FilterOperator.parse(self.operator),
            values=tuple(self.resolved_values()),
        )


class TimeDimensionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dimension: str
    granularity: str
    date_range: Optional[List[Any]] = Field(
        default=None, validation_alias=AliasChoices("dateRange", "date_range")
    )

    @field_validator("date_range")
    @classmethod
    def validate_date_range(cls, v):
        if v is not None and len(v) != 2:
            raise ValueError("dateRange must contain exactly two values: [from, to]")
        return v

    def to_clause(self) -> TimeDimensionClause:
        return TimeDimensionClause(
            dimension=self.dimension,
            granularity=Granularity.parse(self.granularity),
            date_range=tuple(self.date_range) if self.date_range is not None else None,
        )


class AnalyticsQuery(BaseModel):
    """Body of POST /api/analytics/query (and its preview/export variants)."""

    model_config = ConfigDict(populate_by_name=True)

    measures: List[str] = Field(default_factory=list)
    dimensions: List[str] = Field(default_factory=list)
    filters: List[FilterModel] = Field(default_factory=list)
    time_dimension: Optional[TimeDimensionModel] = Field(
        default=None, validation_alias=AliasChoices("timeDimension", "time_dimension")
    )
    order: List[List[str]] = Field(default_factory=list, description='[member, direction] pairs, e.g. [["time", "asc"]]')
    limit: Optional[int] = Field(default=None, ge=1, le=ANALYTICS_MAX_LIMIT)
    offset: Optional[int] = Field(default=None, ge=0)

    @field_validator("order")
    @classmethod
    def validate_order(cls, v):
        for item in v:
            if len(item) not in (1, 2):
                raise ValueError("order entries must be [member] or [member, direction]")
        return v

    def to_query_request(self) -> QueryRequest:
        """Convert to the compiler's request type. Raises QueryCompilationError on bad keywords."""
        return QueryRequest(
            measures=tuple(self.measures),
            dimensions=tuple(self.dimensions),
            filters=tuple(f.to_clause() for f in self.filters),
            time_dimension=self.time_dimension.to_clause() if self.time_dimension else None,
            order=tuple(
                OrderClause(
                    member=item[0],
                    direction=OrderDirection.parse(item[1]) if len(item) > 1 else OrderDirection.ASC,
                )
                for item in self.order
            ),
            limit=self.limit,
            offset=self.offset,
        )


class ExportQuery(AnalyticsQuery):
    file_name: str = Field(default="analytics.xlsx", validation_alias=AliasChoices("fileName", "file_name"))
    sheet_name: str = Field(default="Analytics", validation_alias=AliasChoices("sheetName", "sheet_name"))


# ===== RESPONSE MODELS =====


class MeasureInfo(BaseModel):
    name: str
    type: str
    table: str
    description: str


class DimensionInfo(BaseModel):
    name: str
    type: str
    table: str
    description: str
    granularity: Optional[str] = None


class SchemaResponse(BaseModel):
    measures: List[MeasureInfo]
    dimensions: List[DimensionInfo]


class QueryMeta(BaseModel):
    total_rows: int
    query_time_ms: float


class QueryResponse(BaseModel):
    data: List[Dict[str, Any]]
    meta: QueryMeta


class QueryPreviewResponse(BaseModel):
    sql: str
    formatted_sql: str
    parameters: Dict[str, Any]
    columns: List[str]
    primary_table: str
    joined_tables: List[str]
    dialect: str
