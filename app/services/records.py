# app/services/records.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import DatabaseError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import MAX_RECORDS_PER_UPDATE
from app.exceptions import UnknownFieldError, UnknownTableError, WriteFailure
from app.models import HostTable, Record
from app.services.types import FieldUpdate
from app.settings import settings_cache


@dataclass(frozen=True)
class PermissionCheck:
    has_permission: bool
    reason_display_string: Optional[str] = None


def cell_value_as_string(value: Any) -> str:
    """Render a stored field value the way it reads in the grid."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "checked" if value else ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(
            s for s in (cell_value_as_string(v) for v in value) if s
        )
    if isinstance(value, dict):
        # linked records, collaborators and attachments carry a name or url
        for key in ("name", "url"):
            if value.get(key):
                return str(value[key])
        return ""
    return str(value)


async def get_table_by_name(db: AsyncSession, name: str) -> HostTable:
    table = (
        await db.execute(select(HostTable).where(HostTable.name == name))
    ).scalar_one_or_none()
    if table is None:
        raise UnknownTableError(name)
    return table


async def ensure_table(
    db: AsyncSession,
    name: str,
    field_names: Iterable[str],
) -> HostTable:
    """Create `name` if missing and make sure it carries `field_names`."""
    wanted = list(dict.fromkeys(field_names))
    try:
        table = await get_table_by_name(db, name)
    except UnknownTableError:
        table = HostTable(name=name, field_names=wanted)
        db.add(table)
        await db.commit()
        await db.refresh(table)
        logger.info("Created table {} with fields {}", name, wanted)
        return table
    missing = [f for f in wanted if f not in table.field_names]
    if missing:
        table.field_names = [*table.field_names, *missing]
        await db.commit()
        logger.info("Added fields {} to table {}", missing, name)
    return table


def validate_field_names(table: HostTable, names: Iterable[str]) -> None:
    for name in names:
        if name not in table.field_names:
            raise UnknownFieldError(table.name, name)


READ_ONLY_REASON = "You don't have permission to update records in this base"


def check_write_access() -> PermissionCheck:
    """Whether the base accepts any record change at all."""
    if settings_cache.read_only:
        return PermissionCheck(False, READ_ONLY_REASON)
    return PermissionCheck(True)


def check_update_permission(
    table: HostTable,
    field_names: Iterable[str],
) -> PermissionCheck:
    """Can records of `table` be updated on these fields?

    Field values are not needed to answer, only the field names.
    """
    access = check_write_access()
    if not access.has_permission:
        return access
    for name in field_names:
        if name not in table.field_names:
            return PermissionCheck(
                False,
                f"No field named \"{name}\" in table \"{table.name}\"",
            )
    return PermissionCheck(True)


class TableRowSource:
    def __init__(self, db: AsyncSession, table: HostTable):
        self.db = db
        self.table = table

    async def list_rows(self) -> List[Record]:
        stmt = (
            select(Record)
            .where(Record.table_id == self.table.id)
            .order_by(Record.seq.asc())
        )
        return list((await self.db.execute(stmt)).scalars().all())


class FieldSelector:
    def __init__(self, table: HostTable, name: str):
        validate_field_names(table, [name])
        self.table = table
        self.name = name

    def extract(self, row: Record) -> str:
        return cell_value_as_string((row.fields or {}).get(self.name))


class RecordWriter:
    """Applies a batch of field updates to one table in a single commit."""

    def __init__(
        self,
        db: AsyncSession,
        table: HostTable,
        max_batch_size: int = MAX_RECORDS_PER_UPDATE,
    ):
        self.db = db
        self.table = table
        self.max_batch_size = max_batch_size

    async def submit(self, batch: Sequence[FieldUpdate]) -> None:
        access = check_write_access()
        if not access.has_permission:
            raise WriteFailure(access.reason_display_string)
        if len(batch) > self.max_batch_size:
            raise WriteFailure(
                f"Cannot update more than {self.max_batch_size} records at once"
                f" (got {len(batch)})"
            )
        ids = [u.id for u in batch]
        rows = (
            await self.db.execute(
                select(Record)
                .where(Record.table_id == self.table.id, Record.id.in_(ids))
                # reload rows listed at the start of the run
                .execution_options(populate_existing=True)
            )
        ).scalars().all()
        by_id: Dict[str, Record] = {r.id: r for r in rows}
        missing = [i for i in ids if i not in by_id]
        if missing:
            raise WriteFailure(f"Records not found in {self.table.name}: {missing}")
        for update in batch:
            unknown = [f for f in update.fields if f not in self.table.field_names]
            if unknown:
                raise WriteFailure(
                    f"Unknown field(s) {unknown} in table {self.table.name}"
                )
        for update in batch:
            row = by_id[update.id]
            row.fields = {**(row.fields or {}), **update.fields}
        try:
            await self.db.commit()
        except DatabaseError as exc:
            await self.db.rollback()
            raise WriteFailure(f"Batch of {len(batch)} update(s) was rejected") from exc
