from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from mimir_ingest.core.config import Settings


class ErrorPolicy(StrEnum):
    # error states enqueue Reset and the run ends back in NotAvailable
    AUTO_RESET = "auto_reset"
    # error states enqueue nothing and the run ends in the error state
    HALT = "halt"


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    index_type: str
    data_source: str
    region: str
    working_dir: Path
    handlers_dir: Path
    index_endpoint: str
    topic: str = "state"
    error_policy: ErrorPolicy = ErrorPolicy.AUTO_RESET

    def __post_init__(self) -> None:
        for name in ("index_type", "data_source", "region", "index_endpoint", "topic"):
            if not getattr(self, name):
                raise ValueError(f"PipelineConfig.{name} must not be empty")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        index_type: str,
        data_source: str,
        region: str,
    ) -> "PipelineConfig":
        return cls(
            index_type=index_type,
            data_source=data_source,
            region=region,
            working_dir=Path(settings.working_dir),
            handlers_dir=Path(settings.handlers_dir),
            index_endpoint=settings.index_endpoint,
            topic=settings.topic,
            error_policy=ErrorPolicy(settings.error_policy),
        )
