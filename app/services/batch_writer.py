# app/services/batch_writer.py

from __future__ import annotations
from typing import Iterator, List, Optional, Sequence

from loguru import logger

from app.config import MAX_RECORDS_PER_UPDATE
from app.services.types import FieldUpdate, Writer


def chunked(
    updates: Sequence[FieldUpdate],
    size: int,
) -> Iterator[List[FieldUpdate]]:
    for start in range(0, len(updates), size):
        yield list(updates[start:start + size])


async def update_records_in_batches(
    writer: Writer,
    updates: Optional[Sequence[FieldUpdate]],
    batch_size: int = MAX_RECORDS_PER_UPDATE,
) -> int:
    """Save updates in batches of at most `batch_size`, one batch at a time.

    Each batch is awaited before the next one is sent, which keeps writes
    under the host's rate limit. Returns the number of batches written.
    """
    if not updates:
        return 0
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    written = 0
    for batch in chunked(updates, batch_size):
        await writer.submit(batch)
        written += 1
        logger.debug("Wrote batch {} ({} record(s))", written, len(batch))
    return written
