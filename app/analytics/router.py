"""API router for the analytics module."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.analytics.schemas import (
    AnalyticsQuery,
    ExportQuery,
    QueryPreviewResponse,
    QueryResponse,
    SchemaResponse,
)
from app.analytics.service import XLSX_MEDIA_TYPE, AnalyticsService
from app.core.dependencies import get_analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/schema", response_model=SchemaResponse)
async def get_schema(service: AnalyticsService = Depends(get_analytics_service)) -> SchemaResponse:
    """Measures and dimensions available for querying."""
    return await service.get_schema()


@router.post("/query", response_model=QueryResponse)
async def run_query(
    query: AnalyticsQuery, service: AnalyticsService = Depends(get_analytics_service)
) -> QueryResponse:
    """Compile and execute an analytics query."""
    return await service.run_query(query)


@router.post("/query/preview", response_model=QueryPreviewResponse)
async def preview_query(
    query: AnalyticsQuery, service: AnalyticsService = Depends(get_analytics_service)
) -> QueryPreviewResponse:
    """Compile without executing: SQL text, bound parameters and join plan."""
    return await service.preview_query(query)


@router.post("/query/export-xlsx")
async def export_query_xlsx(
    query: ExportQuery, service: AnalyticsService = Depends(get_analytics_service)
) -> Response:
    """Execute an analytics query and download the rows as an Excel workbook."""
    content, file_name = await service.export_query_xlsx(query)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
