from __future__ import annotations

from datetime import datetime

from . import events as ev
from . import states as st


def failure_message(state: st.State, event: ev.Event) -> str:
    return f"Wrong state, event combination: {state.kind} {event.name}"


def next_state(state: st.State, event: ev.Event, *, now: datetime) -> st.State:
    """
    Compute the successor of `state` under `event`.

    Pure: `now` stamps the in-progress states. Any pair missing from the table
    yields Failure.
    """
    match (state, event):
        case (st.NotAvailable(), ev.Download()):
            return st.DownloadingInProgress(started_at=now)

        case (st.DownloadingInProgress(), ev.DownloadingError(details=d)):
            return st.DownloadingError(details=d)
        case (st.DownloadingInProgress(), ev.DownloadingComplete(file_path=p, duration=d)):
            return st.Downloaded(file_path=p, duration=d)
        case (st.DownloadingError(), ev.Reset()):
            return st.NotAvailable()

        case (st.Downloaded(), ev.Process(file_path=p)):
            return st.ProcessingInProgress(file_path=p, started_at=now)
        case (st.Downloaded(), ev.Index(file_path=p)):
            return st.IndexingInProgress(file_path=p, started_at=now)

        case (st.ProcessingInProgress(), ev.ProcessingError(details=d)):
            return st.ProcessingError(details=d)
        case (st.ProcessingInProgress(), ev.ProcessingComplete(file_path=p, duration=d)):
            return st.Processed(file_path=p, duration=d)
        case (st.ProcessingError(), ev.Reset()):
            return st.NotAvailable()

        case (st.Processed(), ev.Index(file_path=p)):
            return st.IndexingInProgress(file_path=p, started_at=now)

        case (st.IndexingInProgress(), ev.IndexingError(details=d)):
            return st.IndexingError(details=d)
        case (st.IndexingInProgress(), ev.IndexingComplete(duration=d)):
            return st.Indexed(duration=d)
        case (st.IndexingError(), ev.Reset()):
            return st.NotAvailable()

        case (st.Indexed(), ev.Validate()):
            return st.ValidationInProgress()

        case (st.ValidationInProgress(), ev.ValidationError(details=d)):
            return st.ValidationError(details=d)
        case (st.ValidationInProgress(), ev.ValidationComplete()):
            return st.Available()
        case (st.ValidationError(), ev.Reset()):
            return st.NotAvailable()

        case _:
            return st.Failure(message=failure_message(state, event))
