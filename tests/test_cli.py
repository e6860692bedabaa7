from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from mimir_ingest import cli
from mimir_ingest.core.config import Settings
from mimir_ingest.core.errors import ProtocolError
from mimir_ingest.pipeline import states as st


def test_run_requires_the_three_parameters() -> None:
    parser = cli._build_parser()
    args = parser.parse_args(["run", "-i", "addresses", "-d", "bano", "-r", "75"])
    assert (args.index_type, args.data_source, args.region) == ("addresses", "bano", "75")

    with pytest.raises(SystemExit):
        parser.parse_args(["run", "-i", "addresses", "-d", "bano"])


def test_describe_states() -> None:
    assert cli.describe(st.Available()).plain == "Available"
    assert (
        cli.describe(st.Downloaded(file_path=Path("work/osm/a.pbf"), duration=timedelta(seconds=2))).plain
        == "Downloaded  work/osm/a.pbf in 2.00 s"
    )
    assert cli.describe(st.IndexingError(details="es down")).plain == "IndexingError  es down"


class _Sub:
    def __init__(self, states: list[st.State]) -> None:
        self.states = states

    def poll(self, timeout_ms: int) -> st.State | None:
        return self.states.pop(0) if self.states else None


class _Worker:
    def __init__(self, alive: bool) -> None:
        self.alive = alive

    def is_alive(self) -> bool:
        return self.alive


def test_follow_stops_on_finishing_state() -> None:
    sub = _Sub([st.ValidationInProgress(), st.Available(), st.NotAvailable()])
    out = list(cli._follow(sub, _Worker(alive=True)))  # type: ignore[arg-type]
    assert [s.kind for s in out] == ["ValidationInProgress", "Available"]


def test_follow_stops_when_driver_is_gone() -> None:
    sub = _Sub([st.IndexingError(details="x")])
    out = list(cli._follow(sub, _Worker(alive=False)))  # type: ignore[arg-type]
    assert [s.kind for s in out] == ["IndexingError"]


class _Publisher:
    instances: list["_Publisher"] = []

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        self.closed = False
        _Publisher.instances.append(self)

    def send(self, topic: str, payload: str) -> None:
        raise AssertionError("nothing should be published")

    def close(self) -> None:
        self.closed = True


def test_run_closes_publisher_when_subscriber_cannot_start(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _broken_subscriber(endpoint: str, topic: str) -> None:
        raise ProtocolError(f"Could not subscribe to '{topic}' on {endpoint}")

    _Publisher.instances.clear()
    monkeypatch.setattr(cli, "ZmqPublisher", _Publisher)
    monkeypatch.setattr(cli, "StateSubscriber", _broken_subscriber)
    args = cli._build_parser().parse_args(["run", "-i", "addresses", "-d", "bano", "-r", "75"])

    with pytest.raises(ProtocolError):
        cli._cmd_run(args, Settings(_env_file=None))

    assert [p.closed for p in _Publisher.instances] == [True]
