# app/models.py

from __future__ import annotations
from pendulum import DateTime as PendulumDT, now
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    String,
)
from typing import Any, Dict, List
from uuid import uuid4

from app.db import Base
from app.utils.tz import get_tz


def new_record_id() -> str:
    """Record ids look like the host's: `rec` followed by 14 hex chars."""
    return "rec" + uuid4().hex[:14]


def _now() -> PendulumDT:
    return now(get_tz())


class AppSettings(Base):
    __tablename__ = "app_settings"
    id: Mapped[int] = mapped_column(primary_key=True)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")
    read_only: Mapped[bool] = mapped_column(Boolean(), default=False)


class HostTable(Base):
    __tablename__ = "host_tables"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    field_names: Mapped[List[str]] = mapped_column(JSON(), default=list)
    created_at: Mapped[PendulumDT] = mapped_column(
        DateTime(timezone=True),
        default=_now,
        nullable=False,
    )


class Record(Base):
    __tablename__ = "records"
    # insertion order; the public identifier is `id`
    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(
        String(17),
        unique=True,
        index=True,
        default=new_record_id,
    )
    table_id: Mapped[int] = mapped_column(
        ForeignKey("host_tables.id", ondelete="CASCADE"),
        index=True,
    )
    fields: Mapped[Dict[str, Any]] = mapped_column(JSON(), default=dict)
    created_at: Mapped[PendulumDT] = mapped_column(
        DateTime(timezone=True),
        default=_now,
        nullable=False,
    )
    updated_at: Mapped[PendulumDT] = mapped_column(
        DateTime(timezone=True),
        default=_now,
        onupdate=_now,
        nullable=False,
    )
