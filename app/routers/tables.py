# app/routers/tables.py

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.models import HostTable, Record
from app.schemas import (
    PermissionOut,
    RecordCreate,
    RecordOut,
    RecordPatch,
    TableCreate,
    TableOut,
)
from app.services.records import (
    check_update_permission,
    check_write_access,
    get_table_by_name,
    validate_field_names,
)


router = APIRouter()


def _require_write_access() -> None:
    access = check_write_access()
    if not access.has_permission:
        raise HTTPException(403, access.reason_display_string)


async def _get_record(db: AsyncSession, table: HostTable, record_id: str) -> Record:
    row = (
        await db.execute(
            select(Record)
            .where(Record.table_id == table.id, Record.id == record_id)
        )
    ).scalar_one_or_none()
    if row is None:
        raise HTTPException(404, f"Record {record_id} not found in {table.name}")
    return row


@router.post("", response_model=TableOut, status_code=status.HTTP_201_CREATED)
async def create_table(body: TableCreate, db: AsyncSession = Depends(get_db)):
    t = HostTable(name=body.name, field_names=list(body.field_names))
    db.add(t)
    await db.commit()
    await db.refresh(t)
    return TableOut.model_validate(t, from_attributes=True)


@router.get("", response_model=List[TableOut])
async def list_tables(db: AsyncSession = Depends(get_db)):
    rows = (await db.execute(select(HostTable).order_by(HostTable.name))).scalars().all()
    return [ TableOut.model_validate(x, from_attributes=True) for x in rows ]


@router.get("/{table_name}", response_model=TableOut)
async def get_table(table_name: str, db: AsyncSession = Depends(get_db)):
    table = await get_table_by_name(db, table_name)
    return TableOut.model_validate(table, from_attributes=True)


@router.get("/{table_name}/permissions", response_model=PermissionOut)
async def check_permissions(
    table_name: str,
    field: List[str] = Query(default=[]),
    db: AsyncSession = Depends(get_db),
):
    table = await get_table_by_name(db, table_name)
    check = check_update_permission(table, field)
    return PermissionOut(
        has_permission=check.has_permission,
        reason_display_string=check.reason_display_string,
    )


@router.post(
    "/{table_name}/records",
    response_model=RecordOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_record(
    table_name: str,
    body: RecordCreate,
    db: AsyncSession = Depends(get_db),
):
    table = await get_table_by_name(db, table_name)
    _require_write_access()
    validate_field_names(table, body.fields)
    r = Record(table_id=table.id, fields=dict(body.fields))
    db.add(r)
    await db.commit()
    await db.refresh(r)
    return RecordOut.model_validate(r, from_attributes=True)


@router.get("/{table_name}/records", response_model=List[RecordOut])
async def list_records(
    table_name: str,
    limit: int = Query(1000, ge=1, le=10000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    table = await get_table_by_name(db, table_name)
    stmt = (
        select(Record)
        .where(Record.table_id == table.id)
        .order_by(Record.seq.asc())
        .offset(offset)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).scalars().all()
    return [ RecordOut.model_validate(x, from_attributes=True) for x in rows ]


@router.get("/{table_name}/records/{record_id}", response_model=RecordOut)
async def get_record(
    table_name: str,
    record_id: str,
    db: AsyncSession = Depends(get_db),
):
    table = await get_table_by_name(db, table_name)
    row = await _get_record(db, table, record_id)
    return RecordOut.model_validate(row, from_attributes=True)


@router.patch("/{table_name}/records/{record_id}", response_model=RecordOut)
async def patch_record(
    table_name: str,
    record_id: str,
    body: RecordPatch,
    db: AsyncSession = Depends(get_db),
):
    table = await get_table_by_name(db, table_name)
    _require_write_access()
    validate_field_names(table, body.fields)
    row = await _get_record(db, table, record_id)
    # reassign so the JSON column is flagged dirty
    row.fields = {**(row.fields or {}), **body.fields}
    await db.commit()
    await db.refresh(row)
    return RecordOut.model_validate(row, from_attributes=True)


@router.delete("/{table_name}/records/{record_id}")
async def delete_record(
    table_name: str,
    record_id: str,
    db: AsyncSession = Depends(get_db),
):
    table = await get_table_by_name(db, table_name)
    _require_write_access()
    row = await _get_record(db, table, record_id)
    await db.delete(row)
    await db.commit()
    return {"ok": True, "id": record_id}
