# app/services/pipeline.py

from __future__ import annotations
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from loguru import logger

from app.config import PipelineConfig
from app.exceptions import RunInProgressError
from app.services.batch_writer import update_records_in_batches
from app.services.summarizer import SentenceCount, SummaryClient, fetch_summaries
from app.services.types import AuthRejected, FieldAccessor, RowSource, RunReport, Writer


@dataclass
class RunState:
    in_progress: bool = False
    invalid_api_key: bool = False


class RunGuard:
    """Allows one TL;DR run at a time; a second caller is refused, not queued."""

    def __init__(self):
        self.state = RunState()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[RunState]:
        if self._lock.locked():
            raise RunInProgressError()
        async with self._lock:
            self.state.in_progress = True
            try:
                yield self.state
            finally:
                self.state.in_progress = False


run_guard = RunGuard()


async def run_tldr(
    rows: RowSource,
    source: FieldAccessor,
    writer: Writer,
    client: SummaryClient,
    api_key: str,
    sentence_count: SentenceCount,
    config: PipelineConfig,
    guard: RunGuard = run_guard,
) -> RunReport:
    """Summarize every row and save the summaries back in batches.

    Nothing is written until every row has been summarized.
    """
    async with guard.hold() as state:
        listed = await rows.list_rows()
        logger.info("TL;DR run started for {} row(s)", len(listed))
        outcome = await fetch_summaries(
            listed,
            source,
            client,
            api_key,
            sentence_count,
            config.destination_field,
        )
        if isinstance(outcome, AuthRejected):
            state.invalid_api_key = True
            return RunReport(
                status="invalid_api_key",
                rows=len(listed),
                updated=0,
                batches=0,
            )
        if outcome.updates:
            state.invalid_api_key = False
        batches = await update_records_in_batches(
            writer,
            outcome.updates,
            config.batch_size,
        )
        logger.info(
            "TL;DR run finished: {} record(s) in {} batch(es)",
            len(outcome.updates),
            batches,
        )
        return RunReport(
            status="ok",
            rows=len(listed),
            updated=len(outcome.updates),
            batches=batches,
        )
