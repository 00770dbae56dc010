# app/services/types.py

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union


INVALID_API_KEY_MESSAGE = "INVALID API KEY"


class Row(Protocol):
    id: str


class RowSource(Protocol):
    async def list_rows(self) -> Sequence[Row]: ...


class FieldAccessor(Protocol):
    name: str

    def extract(self, row: Row) -> str: ...


class Writer(Protocol):
    async def submit(self, batch: Sequence["FieldUpdate"]) -> None: ...


@dataclass(frozen=True)
class FieldUpdate:
    id: str
    fields: Dict[str, Any]


# ----- per-row fetch results -----
@dataclass(frozen=True)
class Success:
    row_id: str
    summary: Optional[str]


@dataclass(frozen=True)
class AuthFailure:
    message: str = INVALID_API_KEY_MESSAGE


SummaryResult = Union[Success, AuthFailure]


# ----- fetch stage outcome -----
@dataclass
class Ok:
    updates: List[FieldUpdate] = field(default_factory=list)


@dataclass(frozen=True)
class AuthRejected:
    # rows that had succeeded before the key was refused; their updates are dropped
    discarded: int = 0


FetchOutcome = Union[Ok, AuthRejected]


@dataclass(frozen=True)
class RunReport:
    status: str
    rows: int
    updated: int
    batches: int

    @property
    def invalid_api_key(self) -> bool:
        return self.status == "invalid_api_key"
