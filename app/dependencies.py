# GPL-3.0-only
from typing import AsyncGenerator
import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import PipelineConfig, pipeline_config
from app.db import get_session
from app.services.pipeline import RunGuard, run_guard
from app.services.summarizer import SummaryClient

async def get_db(session: AsyncSession = Depends(get_session)):
    return session

def get_pipeline_config() -> PipelineConfig:
    return pipeline_config

def get_run_guard() -> RunGuard:
    return run_guard

async def get_summary_client(
    config: PipelineConfig = Depends(get_pipeline_config),
) -> AsyncGenerator[SummaryClient, None]:
    async with httpx.AsyncClient(timeout=config.request_timeout) as http:
        yield SummaryClient(
            http,
            endpoint=config.api_endpoint,
            default_sentence_count=config.sentence_count_default,
        )
