# app/analytics/service.py
"""Analytics service: schema introspection, query execution, SQL preview and XLSX export."""

import io
import logging
import re
from typing import Tuple

import pandas as pd
import sqlparse
from openpyxl.styles import Alignment, Font, PatternFill

from app.analytics.dao import AnalyticsDAO
from app.analytics.schemas import (
    AnalyticsQuery,
    ExportQuery,
    QueryMeta,
    QueryPreviewResponse,
    QueryResponse,
    SchemaResponse,
)
from app.query import CompiledQuery, QueryCompiler

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Characters allowed in download names; every other one becomes "_"
_UNSAFE_FILE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]")


class AnalyticsService:
    """Glue between the HTTP layer, the query compiler and the storage connector."""

    def __init__(self, compiler: QueryCompiler, analytics_dao: AnalyticsDAO):
        self.compiler = compiler
        self.dao = analytics_dao

    async def get_schema(self) -> SchemaResponse:
        return SchemaResponse(**self.compiler.registry.describe())

    def compile(self, query: AnalyticsQuery) -> CompiledQuery:
        """Compile a request; QueryCompilationError propagates to the exception handlers."""
        return self.compiler.compile(query.to_query_request())

    async def preview_query(self, query: AnalyticsQuery) -> QueryPreviewResponse:
        compiled = self.compile(query)
        return QueryPreviewResponse(
            sql=compiled.sql,
            formatted_sql=sqlparse.format(compiled.sql, reindent=True, keyword_case="upper"),
            parameters=compiled.parameters,
            columns=compiled.columns,
            primary_table=compiled.join_plan.primary_table,
            joined_tables=compiled.join_plan.joined_tables,
            dialect=self.compiler.dialect,
        )

    async def run_query(self, query: AnalyticsQuery) -> QueryResponse:
        compiled = self.compile(query)
        result = self.dao.execute(compiled)
        return QueryResponse(
            data=result.rows,
            meta=QueryMeta(total_rows=result.total_rows, query_time_ms=result.query_time_ms),
        )

    async def export_query_xlsx(self, query: ExportQuery) -> Tuple[bytes, str]:
        """Run the query and render the rows as an XLSX workbook. Returns (content, file name)."""
        compiled = self.compile(query)
        result = self.dao.execute(compiled)

        df = pd.DataFrame(result.rows, columns=compiled.columns)
        # Excel cannot store timezone-aware datetimes
        for column in df.columns:
            if isinstance(df[column].dtype, pd.DatetimeTZDtype):
                df[column] = df[column].dt.tz_localize(None)

        excel_buffer = io.BytesIO()
        sheet_name = query.sheet_name[:31]  # Excel sheet name limit is 31 chars
        with pd.ExcelWriter(excel_buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]
            _format_header(worksheet, len(df.columns))
            _auto_adjust_columns(worksheet)

        file_name = clean_file_name(query.file_name)
        logger.info("Exported %d analytics rows to %s", result.total_rows, file_name)
        return excel_buffer.getvalue(), file_name


def _format_header(worksheet, column_count: int) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for col_num in range(1, column_count + 1):
        cell = worksheet.cell(row=1, column=col_num)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment


def _auto_adjust_columns(worksheet) -> None:
    """Auto-adjust column widths for better readability."""
    for column in worksheet.columns:
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        worksheet.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)


def clean_file_name(file_name: str) -> str:
    """Download name safe to quote in a Content-Disposition header, always ending in .xlsx."""
    cleaned = _UNSAFE_FILE_NAME_CHARS.sub("_", file_name).strip(" .")
    if not cleaned:
        cleaned = "analytics"
    if not cleaned.endswith(".xlsx"):
        cleaned += ".xlsx"
    return cleaned
