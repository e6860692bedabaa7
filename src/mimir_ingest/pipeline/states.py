"""
Pipeline states.

Each state is a frozen pydantic model tagged by its `kind`, so a state
serializes to a self-describing JSON object, e.g.

    {"kind": "Downloaded", "file_path": "work/bano/bano-75.csv", "duration": "PT2.5S"}

and subscribers decode it back with `decode_state`.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _State(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class NotAvailable(_State):
    kind: Literal["NotAvailable"] = "NotAvailable"


class DownloadingInProgress(_State):
    kind: Literal["DownloadingInProgress"] = "DownloadingInProgress"
    started_at: datetime


class DownloadingError(_State):
    kind: Literal["DownloadingError"] = "DownloadingError"
    details: str


class Downloaded(_State):
    kind: Literal["Downloaded"] = "Downloaded"
    file_path: Path
    duration: timedelta


class ProcessingInProgress(_State):
    kind: Literal["ProcessingInProgress"] = "ProcessingInProgress"
    file_path: Path
    started_at: datetime


class ProcessingError(_State):
    kind: Literal["ProcessingError"] = "ProcessingError"
    details: str


class Processed(_State):
    kind: Literal["Processed"] = "Processed"
    file_path: Path
    duration: timedelta


class IndexingInProgress(_State):
    kind: Literal["IndexingInProgress"] = "IndexingInProgress"
    file_path: Path
    started_at: datetime


class IndexingError(_State):
    kind: Literal["IndexingError"] = "IndexingError"
    details: str


class Indexed(_State):
    kind: Literal["Indexed"] = "Indexed"
    duration: timedelta


class ValidationInProgress(_State):
    kind: Literal["ValidationInProgress"] = "ValidationInProgress"


class ValidationError(_State):
    kind: Literal["ValidationError"] = "ValidationError"
    details: str


class Available(_State):
    kind: Literal["Available"] = "Available"


class Failure(_State):
    kind: Literal["Failure"] = "Failure"
    message: str


State = Annotated[
    Union[
        NotAvailable,
        DownloadingInProgress,
        DownloadingError,
        Downloaded,
        ProcessingInProgress,
        ProcessingError,
        Processed,
        IndexingInProgress,
        IndexingError,
        Indexed,
        ValidationInProgress,
        ValidationError,
        Available,
        Failure,
    ],
    Field(discriminator="kind"),
]

ERROR_STATES = (DownloadingError, ProcessingError, IndexingError, ValidationError)

# A listener can stop once it sees one of these.
FINISHED_STATES = (NotAvailable, Available, Failure)

_adapter: TypeAdapter[State] = TypeAdapter(State)


def encode_state(state: _State) -> str:
    return state.model_dump_json()


def decode_state(payload: str | bytes) -> State:
    """Raises pydantic.ValidationError on anything that is not a known state."""
    return _adapter.validate_json(payload)


def is_error(state: _State) -> bool:
    return isinstance(state, ERROR_STATES)


def is_finished(state: _State) -> bool:
    return isinstance(state, FINISHED_STATES)
