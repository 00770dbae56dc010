# app/schemas.py

from __future__ import annotations
from datetime import datetime
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    constr,
)
from re import search
import pendulum
from typing import Any, Dict, List, Optional


class ExtendedBase(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


# ----- Tables -----
class TableCreate(ExtendedBase):
    name: constr(min_length=1, max_length=100, strip_whitespace=True)
    field_names: List[constr(min_length=1, max_length=100, strip_whitespace=True)] = []

    @field_validator('name')
    def validate_name(cls, v):
        if search(r'<[^>]*>', v):
            raise ValueError('Table name cannot contain HTML tags')
        return v

    @field_validator('field_names')
    def validate_field_names(cls, v):
        if len(v) > 500:
            raise ValueError('Too many fields (maximum 500)')
        if len(set(v)) != len(v):
            raise ValueError('Duplicate field names not allowed')
        return v


class TableOut(ExtendedBase):
    id: int
    name: str
    field_names: List[str]
    model_config = ConfigDict(from_attributes=True)


# ----- Records -----
class RecordCreate(ExtendedBase):
    fields: Dict[str, Any] = {}


class RecordPatch(ExtendedBase):
    fields: Dict[str, Any]


class RecordOut(ExtendedBase):
    id: str
    fields: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PermissionOut(ExtendedBase):
    has_permission: bool
    reason_display_string: Optional[str] = None


# ----- TL;DR -----
class TldrRequest(ExtendedBase):
    api_key: constr(min_length=1, max_length=200, strip_whitespace=True)
    num_sentences: Optional[int] = Field(default=None, ge=1, le=7)

    @field_validator('num_sentences', mode='before')
    @classmethod
    def blank_means_default(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TldrRunOut(ExtendedBase):
    status: str
    invalid_api_key: bool
    rows: int
    updated: int
    batches: int


class TldrStatusOut(ExtendedBase):
    in_progress: bool
    invalid_api_key: bool


# ----- Settings -----
class SettingsOut(ExtendedBase):
    timezone: str = "UTC"
    read_only: bool = False


class SettingsPatch(ExtendedBase):
    timezone: constr(min_length=1, max_length=64, strip_whitespace=True) = "UTC"
    read_only: bool = False

    @field_validator('timezone')
    def validate_timezone(cls, v):
        try:
            pendulum.timezone(v)
        except Exception:
            raise ValueError(f'Unknown timezone {v!r}')
        return v
