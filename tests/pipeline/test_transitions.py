from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from mimir_ingest.pipeline import events as ev
from mimir_ingest.pipeline import states as st
from mimir_ingest.pipeline.transitions import next_state

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
EARLIER = NOW - timedelta(minutes=5)
P = Path("work/bano/bano-75.csv")
Q = Path("work/cosmogony/75.json.gz")
D = timedelta(seconds=42)

SAMPLE_STATES: dict[str, st.State] = {
    "NotAvailable": st.NotAvailable(),
    "DownloadingInProgress": st.DownloadingInProgress(started_at=EARLIER),
    "DownloadingError": st.DownloadingError(details="x"),
    "Downloaded": st.Downloaded(file_path=P, duration=D),
    "ProcessingInProgress": st.ProcessingInProgress(file_path=P, started_at=EARLIER),
    "ProcessingError": st.ProcessingError(details="x"),
    "Processed": st.Processed(file_path=Q, duration=D),
    "IndexingInProgress": st.IndexingInProgress(file_path=P, started_at=EARLIER),
    "IndexingError": st.IndexingError(details="x"),
    "Indexed": st.Indexed(duration=D),
    "ValidationInProgress": st.ValidationInProgress(),
    "ValidationError": st.ValidationError(details="x"),
    "Available": st.Available(),
    "Failure": st.Failure(message="x"),
}

SAMPLE_EVENTS: dict[str, ev.Event] = {
    "Download": ev.Download(),
    "DownloadingError": ev.DownloadingError(details="net down"),
    "DownloadingComplete": ev.DownloadingComplete(file_path=P, duration=D),
    "Process": ev.Process(file_path=P),
    "ProcessingError": ev.ProcessingError(details="bad pbf"),
    "ProcessingComplete": ev.ProcessingComplete(file_path=Q, duration=D),
    "Index": ev.Index(file_path=P),
    "IndexingError": ev.IndexingError(details="es down"),
    "IndexingComplete": ev.IndexingComplete(duration=D),
    "Validate": ev.Validate(),
    "ValidationError": ev.ValidationError(details="red"),
    "ValidationComplete": ev.ValidationComplete(),
    "Reset": ev.Reset(),
}

LEGAL: dict[tuple[str, str], st.State] = {
    ("NotAvailable", "Download"): st.DownloadingInProgress(started_at=NOW),
    ("DownloadingInProgress", "DownloadingError"): st.DownloadingError(details="net down"),
    ("DownloadingInProgress", "DownloadingComplete"): st.Downloaded(file_path=P, duration=D),
    ("DownloadingError", "Reset"): st.NotAvailable(),
    ("Downloaded", "Process"): st.ProcessingInProgress(file_path=P, started_at=NOW),
    ("Downloaded", "Index"): st.IndexingInProgress(file_path=P, started_at=NOW),
    ("ProcessingInProgress", "ProcessingError"): st.ProcessingError(details="bad pbf"),
    ("ProcessingError", "Reset"): st.NotAvailable(),
    ("ProcessingInProgress", "ProcessingComplete"): st.Processed(file_path=Q, duration=D),
    ("Processed", "Index"): st.IndexingInProgress(file_path=P, started_at=NOW),
    ("IndexingInProgress", "IndexingError"): st.IndexingError(details="es down"),
    ("IndexingError", "Reset"): st.NotAvailable(),
    ("IndexingInProgress", "IndexingComplete"): st.Indexed(duration=D),
    ("Indexed", "Validate"): st.ValidationInProgress(),
    ("ValidationInProgress", "ValidationError"): st.ValidationError(details="red"),
    ("ValidationError", "Reset"): st.NotAvailable(),
    ("ValidationInProgress", "ValidationComplete"): st.Available(),
}


@pytest.mark.parametrize(
    ("pair", "expected"), list(LEGAL.items()), ids=[f"{s}-{e}" for s, e in LEGAL]
)
def test_legal_transitions(pair: tuple[str, str], expected: st.State) -> None:
    state, event = pair
    assert next_state(SAMPLE_STATES[state], SAMPLE_EVENTS[event], now=NOW) == expected


ILLEGAL = [
    (s, e) for s in SAMPLE_STATES for e in SAMPLE_EVENTS if (s, e) not in LEGAL
]


@pytest.mark.parametrize(("state", "event"), ILLEGAL, ids=[f"{s}-{e}" for s, e in ILLEGAL])
def test_every_other_pair_is_a_failure(state: str, event: str) -> None:
    out = next_state(SAMPLE_STATES[state], SAMPLE_EVENTS[event], now=NOW)
    assert out == st.Failure(message=f"Wrong state, event combination: {state} {event}")


def test_illegal_validate_from_idle_message() -> None:
    out = next_state(st.NotAvailable(), ev.Validate(), now=NOW)
    assert isinstance(out, st.Failure)
    assert out.message == "Wrong state, event combination: NotAvailable Validate"


def test_failure_accepts_nothing() -> None:
    for event in SAMPLE_EVENTS.values():
        assert isinstance(next_state(st.Failure(message="x"), event, now=NOW), st.Failure)


@pytest.mark.parametrize("state", [s for s in SAMPLE_STATES.values() if st.is_error(s)])
def test_reset_from_any_error_state_goes_idle(state: st.State) -> None:
    assert next_state(state, ev.Reset(), now=NOW) == st.NotAvailable()


def test_next_state_does_not_mutate_input() -> None:
    before = st.Downloaded(file_path=P, duration=D)
    next_state(before, ev.Index(file_path=P), now=NOW)
    assert before == st.Downloaded(file_path=P, duration=D)
