import pytest
from sqlalchemy import inspect, select
from sqlalchemy.exc import DatabaseError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.exceptions import UnknownFieldError, UnknownTableError, WriteFailure
from app.models import HostTable, Record
from app.services.records import (
    FieldSelector,
    RecordWriter,
    TableRowSource,
    cell_value_as_string,
    check_update_permission,
    ensure_table,
    get_table_by_name,
)
from app.services.types import FieldUpdate
from app.settings import settings_cache


async def _table_with_rows(db, urls, name="Urls"):
    table = await ensure_table(db, name, ["URL", "Summary"])
    for url in urls:
        db.add(Record(table_id=table.id, fields={"URL": url}))
    await db.commit()
    return table


# ── Cell rendering ───────────────────────────────────────────────────────────

@pytest.mark.parametrize("value, expected", [
    (None, ""),
    ("https://a.com", "https://a.com"),
    (42, "42"),
    (True, "checked"),
    (False, ""),
    (["a.com", None, "b.com"], "a.com, b.com"),
    ({"url": "https://a.com/x.pdf"}, "https://a.com/x.pdf"),
    ({"name": "Ada", "url": "ignored"}, "Ada"),
    ({}, ""),
])
def test_cell_value_as_string(value, expected):
    assert cell_value_as_string(value) == expected


# ── Tables ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_unknown_table(db_session):
    with pytest.raises(UnknownTableError):
        await get_table_by_name(db_session, "Nope")


@pytest.mark.asyncio
async def test_ensure_table_is_idempotent_and_adds_fields(db_session):
    first = await ensure_table(db_session, "Urls", ["URL"])
    second = await ensure_table(db_session, "Urls", ["URL", "Summary"])
    assert first.id == second.id
    assert second.field_names == ["URL", "Summary"]
    count = len((await db_session.execute(select(HostTable))).scalars().all())
    assert count == 1


# ── Row source / field selector ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_rows_come_back_in_insertion_order(db_session):
    table = await _table_with_rows(db_session, ["c.com", "a.com", "b.com"])
    rows = await TableRowSource(db_session, table).list_rows()
    selector = FieldSelector(table, "URL")
    assert [selector.extract(r) for r in rows] == ["c.com", "a.com", "b.com"]
    assert all(r.id.startswith("rec") and len(r.id) == 17 for r in rows)


@pytest.mark.asyncio
async def test_rows_of_other_tables_are_ignored(db_session):
    table = await _table_with_rows(db_session, ["a.com"])
    await _table_with_rows(db_session, ["x.com", "y.com"], name="Other")
    rows = await TableRowSource(db_session, table).list_rows()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_selector_rejects_unknown_field(db_session):
    table = await _table_with_rows(db_session, [])
    with pytest.raises(UnknownFieldError):
        FieldSelector(table, "Title")


@pytest.mark.asyncio
async def test_selector_empty_cell(db_session):
    table = await _table_with_rows(db_session, [])
    db_session.add(Record(table_id=table.id, fields={}))
    await db_session.commit()
    (row,) = await TableRowSource(db_session, table).list_rows()
    assert FieldSelector(table, "URL").extract(row) == ""


# ── Writer ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_writer_merges_fields(db_session):
    table = await _table_with_rows(db_session, ["a.com", "b.com"])
    rows = await TableRowSource(db_session, table).list_rows()
    await RecordWriter(db_session, table).submit([
        FieldUpdate(id=rows[0].id, fields={"Summary": "S1"}),
        FieldUpdate(id=rows[1].id, fields={"Summary": "S2"}),
    ])
    rows = await TableRowSource(db_session, table).list_rows()
    assert [r.fields for r in rows] == [
        {"URL": "a.com", "Summary": "S1"},
        {"URL": "b.com", "Summary": "S2"},
    ]


@pytest.mark.asyncio
async def test_writer_rejects_oversized_batch(db_session):
    table = await _table_with_rows(db_session, [])
    batch = [FieldUpdate(id=f"rec{i}", fields={"Summary": "S"}) for i in range(51)]
    with pytest.raises(WriteFailure):
        await RecordWriter(db_session, table).submit(batch)


@pytest.mark.asyncio
async def test_writer_rejects_unknown_record_without_writing(db_session):
    table = await _table_with_rows(db_session, ["a.com"])
    (row,) = await TableRowSource(db_session, table).list_rows()
    with pytest.raises(WriteFailure):
        await RecordWriter(db_session, table).submit([
            FieldUpdate(id=row.id, fields={"Summary": "S1"}),
            FieldUpdate(id="recmissing00000", fields={"Summary": "S2"}),
        ])
    (row,) = await TableRowSource(db_session, table).list_rows()
    assert "Summary" not in row.fields


@pytest.mark.asyncio
async def test_writer_rejects_unknown_field(db_session):
    table = await _table_with_rows(db_session, ["a.com"])
    (row,) = await TableRowSource(db_session, table).list_rows()
    with pytest.raises(WriteFailure):
        await RecordWriter(db_session, table).submit([
            FieldUpdate(id=row.id, fields={"Title": "nope"}),
        ])


# ── Permissions ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_permission_granted(db_session):
    table = await _table_with_rows(db_session, [])
    check = check_update_permission(table, ["Summary"])
    assert check.has_permission is True
    assert check.reason_display_string is None


@pytest.mark.asyncio
async def test_permission_denied_for_missing_field(db_session):
    table = await _table_with_rows(db_session, [])
    check = check_update_permission(table, ["Notes"])
    assert check.has_permission is False
    assert "Notes" in check.reason_display_string


@pytest.mark.asyncio
async def test_permission_denied_when_read_only(db_session):
    table = await _table_with_rows(db_session, [])
    settings_cache.read_only = True
    check = check_update_permission(table, ["Summary"])
    assert check.has_permission is False
    assert "permission" in check.reason_display_string


# ── Writer against concurrent edits, read-only mode and failed commits ───────

async def _stored_fields(engine, record_id):
    async with async_sessionmaker(engine, expire_on_commit=False)() as reader:
        row = (
            await reader.execute(select(Record).where(Record.id == record_id))
        ).scalar_one()
        return row.fields


@pytest.mark.asyncio
async def test_writer_keeps_edits_made_after_rows_were_listed(engine, db_session):
    table = await ensure_table(db_session, "Urls", ["URL", "Summary", "Notes"])
    db_session.add(Record(table_id=table.id, fields={"URL": "a.com"}))
    await db_session.commit()
    (row,) = await TableRowSource(db_session, table).list_rows()

    # someone edits the record from another session while summaries are fetched
    async with async_sessionmaker(engine, expire_on_commit=False)() as editor:
        stored = (
            await editor.execute(select(Record).where(Record.id == row.id))
        ).scalar_one()
        stored.fields = {"URL": "fixed.com", "Notes": "user edit"}
        await editor.commit()

    await RecordWriter(db_session, table).submit([
        FieldUpdate(id=row.id, fields={"Summary": "S"}),
    ])
    assert await _stored_fields(engine, row.id) == {
        "URL": "fixed.com",
        "Notes": "user edit",
        "Summary": "S",
    }


@pytest.mark.asyncio
async def test_writer_refuses_when_read_only(engine, db_session):
    table = await _table_with_rows(db_session, ["a.com"])
    (row,) = await TableRowSource(db_session, table).list_rows()
    settings_cache.read_only = True
    with pytest.raises(WriteFailure) as err:
        await RecordWriter(db_session, table).submit([
            FieldUpdate(id=row.id, fields={"Summary": "S"}),
        ])
    assert "permission" in str(err.value)
    assert await _stored_fields(engine, row.id) == {"URL": "a.com"}


@pytest.mark.asyncio
async def test_writer_rolls_back_a_failed_commit(engine, db_session, failing_commit):
    table = await _table_with_rows(db_session, ["a.com", "b.com"])
    first, second = await TableRowSource(db_session, table).list_rows()
    first_id, second_id = first.id, second.id
    writer = RecordWriter(db_session, table)
    await writer.submit([FieldUpdate(id=first_id, fields={"Summary": "S1"})])

    failing_commit(fail_on=1)
    with pytest.raises(WriteFailure) as err:
        await writer.submit([FieldUpdate(id=second_id, fields={"Summary": "S2"})])
    assert isinstance(err.value.__cause__, DatabaseError)
    assert not db_session.in_transaction()
    # the batch committed earlier stays, the failed one leaves no trace
    assert await _stored_fields(engine, first_id) == {"URL": "a.com", "Summary": "S1"}
    assert await _stored_fields(engine, second_id) == {"URL": "b.com"}


def test_models_carry_no_relationships():
    assert not inspect(HostTable).relationships
    assert not inspect(Record).relationships
