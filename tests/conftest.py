from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from mimir_ingest.core.errors import CommandError
from mimir_ingest.pipeline import states as st
from mimir_ingest.pipeline.config import ErrorPolicy, PipelineConfig
from mimir_ingest.pipeline.driver import Driver
from mimir_ingest.pipeline.notifier import Notifier
from mimir_ingest.pipeline.validation import Validator
from mimir_ingest.sources.base import BaseHandler, IndexOptions


class RecordingPublisher:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self.closed = False

    def send(self, topic: str, payload: str) -> None:
        if self.closed:
            raise RuntimeError("send after close")
        self.messages.append((topic, payload))

    def close(self) -> None:
        self.closed = True

    def states(self) -> list[st.State]:
        return [st.decode_state(payload) for _, payload in self.messages]

    def kinds(self) -> list[str]:
        return [s.kind for s in self.states()]


class StepClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@dataclass
class FakeHandler(BaseHandler):
    name: str = "bano"
    supports_transform: bool = False
    download_error: Exception | None = None
    transform_error: Exception | None = None
    index_error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    def download(self, working_dir: Path, region: str) -> Path:
        self.calls.append("download")
        if self.download_error is not None:
            raise self.download_error
        return Path(working_dir) / self.name / f"{self.name}-{region}.csv"

    def transform(self, input_path: Path, working_dir: Path, region: str) -> Path:
        self.calls.append("transform")
        if self.transform_error is not None:
            raise self.transform_error
        return Path(working_dir) / self.name / f"{region}.json.gz"

    def index(
        self,
        handlers_dir: Path,
        index_endpoint: str,
        path: Path,
        options: IndexOptions,
    ) -> None:
        self.calls.append(f"index:{path.name}")
        if self.index_error is not None:
            raise self.index_error


def command_error(stderr: str = "boom") -> CommandError:
    return CommandError(executable=Path("/opt/tool"), returncode=2, stderr=stderr)


def make_config(
    *,
    data_source: str = "bano",
    region: str = "75",
    index_type: str = "addresses",
    error_policy: ErrorPolicy = ErrorPolicy.AUTO_RESET,
) -> PipelineConfig:
    return PipelineConfig(
        index_type=index_type,
        data_source=data_source,
        region=region,
        working_dir=Path("work"),
        handlers_dir=Path("mimirsbrunn"),
        index_endpoint="http://localhost:9200",
        topic="state",
        error_policy=error_policy,
    )


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def make_driver(publisher: RecordingPublisher):
    def _make(
        handler: BaseHandler | None = None,
        *,
        validator: Validator | None = None,
        **config_kw,
    ) -> Driver:
        handlers = {handler.name: handler} if handler is not None else {}
        return Driver(
            make_config(**config_kw),
            handlers=handlers,
            notifier=Notifier(publisher, "state"),
            validator=validator or Validator(settle_s=0),
            clock=StepClock(),
        )

    return _make
