from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path


@dataclass(frozen=True, slots=True)
class _Event:
    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class Download(_Event):
    pass


@dataclass(frozen=True, slots=True)
class DownloadingError(_Event):
    details: str


@dataclass(frozen=True, slots=True)
class DownloadingComplete(_Event):
    file_path: Path
    duration: timedelta


@dataclass(frozen=True, slots=True)
class Process(_Event):
    file_path: Path


@dataclass(frozen=True, slots=True)
class ProcessingError(_Event):
    details: str


@dataclass(frozen=True, slots=True)
class ProcessingComplete(_Event):
    file_path: Path
    duration: timedelta


@dataclass(frozen=True, slots=True)
class Index(_Event):
    file_path: Path


@dataclass(frozen=True, slots=True)
class IndexingError(_Event):
    details: str


@dataclass(frozen=True, slots=True)
class IndexingComplete(_Event):
    duration: timedelta


@dataclass(frozen=True, slots=True)
class Validate(_Event):
    pass


@dataclass(frozen=True, slots=True)
class ValidationError(_Event):
    details: str


@dataclass(frozen=True, slots=True)
class ValidationComplete(_Event):
    pass


@dataclass(frozen=True, slots=True)
class Reset(_Event):
    pass


Event = (
    Download
    | DownloadingError
    | DownloadingComplete
    | Process
    | ProcessingError
    | ProcessingComplete
    | Index
    | IndexingError
    | IndexingComplete
    | Validate
    | ValidationError
    | ValidationComplete
    | Reset
)
