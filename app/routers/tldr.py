# app/routers/tldr.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import PipelineConfig
from app.dependencies import (
    get_db,
    get_pipeline_config,
    get_run_guard,
    get_summary_client,
)
from app.schemas import PermissionOut, TldrRequest, TldrRunOut, TldrStatusOut
from app.services.pipeline import RunGuard, run_tldr
from app.services.records import (
    FieldSelector,
    RecordWriter,
    TableRowSource,
    check_update_permission,
    get_table_by_name,
)
from app.services.summarizer import SummaryClient


router = APIRouter()


@router.post("", response_model=TldrRunOut)
async def run(
    body: TldrRequest,
    db: AsyncSession = Depends(get_db),
    client: SummaryClient = Depends(get_summary_client),
    config: PipelineConfig = Depends(get_pipeline_config),
    guard: RunGuard = Depends(get_run_guard),
):
    """Summarize the URL of every record and store it in the summary field."""
    table = await get_table_by_name(db, config.table_name)
    permission = check_update_permission(table, [config.destination_field])
    if not permission.has_permission:
        raise HTTPException(403, permission.reason_display_string)
    report = await run_tldr(
        TableRowSource(db, table),
        FieldSelector(table, config.source_field),
        RecordWriter(db, table, max_batch_size=config.batch_size),
        client,
        api_key=body.api_key,
        sentence_count=body.num_sentences,
        config=config,
        guard=guard,
    )
    return TldrRunOut(
        status=report.status,
        invalid_api_key=report.invalid_api_key,
        rows=report.rows,
        updated=report.updated,
        batches=report.batches,
    )


@router.get("/status", response_model=TldrStatusOut)
async def run_status(guard: RunGuard = Depends(get_run_guard)):
    return TldrStatusOut(
        in_progress=guard.state.in_progress,
        invalid_api_key=guard.state.invalid_api_key,
    )


@router.get("/permission", response_model=PermissionOut)
async def run_permission(
    db: AsyncSession = Depends(get_db),
    config: PipelineConfig = Depends(get_pipeline_config),
):
    table = await get_table_by_name(db, config.table_name)
    check = check_update_permission(table, [config.destination_field])
    return PermissionOut(
        has_permission=check.has_permission,
        reason_display_string=check.reason_display_string,
    )
