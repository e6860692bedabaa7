from __future__ import annotations

import threading
from collections import deque
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Mapping

from mimir_ingest.core import ILogger, format_duration, get_logger, monotonic_ms, utc_now
from mimir_ingest.core.errors import IngestError
from mimir_ingest.sources.base import SourceHandler

from . import events as ev
from . import states as st
from .config import ErrorPolicy, PipelineConfig
from .notifier import Notifier
from .transitions import next_state
from .validation import Validator

# Failures a handler may raise during a reaction. They become *Error events;
# anything else is a bug and propagates out of drive().
HANDLER_ERRORS = (IngestError, OSError)


class Driver:
    """
    Event-driven state machine for one ingestion run.

    `next` applies an event to the current state, `run` performs the side
    effect of the current state and enqueues the follow-up event, `drive`
    loops over both while publishing every state.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        handlers: Mapping[str, SourceHandler],
        notifier: Notifier,
        validator: Validator | None = None,
        clock: Callable[[], datetime] = utc_now,
        logger: ILogger | None = None,
    ) -> None:
        self.config = config
        self.handler: SourceHandler | None = handlers.get(config.data_source)
        self.notifier = notifier
        self.validator = validator or Validator()
        self.clock = clock
        self.log: ILogger = (logger or get_logger("pipeline")).bind(
            data_source=config.data_source,
            region=config.region,
            index_type=config.index_type,
        )

        self.state: st.State = st.NotAvailable()
        self.events: deque[ev.Event] = deque()
        self.history: list[st.State] = []
        self._driving = threading.Lock()

    # -- transition ------------------------------------------------------

    def next(self, event: ev.Event) -> st.State:
        previous = self.state
        self.state = next_state(previous, event, now=self.clock())
        self.log.info(
            "state.transition",
            previous=previous.kind,
            trigger=event.name,
            current=self.state.kind,
        )
        return self.state

    # -- reaction --------------------------------------------------------

    def run(self) -> None:
        match self.state:
            case st.DownloadingInProgress(started_at=started_at):
                self._push(self._download(started_at))
            case st.Downloaded(file_path=path):
                if self.handler is not None and self.handler.supports_transform:
                    self._push(ev.Process(file_path=path))
                else:
                    self._push(ev.Index(file_path=path))
            case st.ProcessingInProgress(file_path=path, started_at=started_at):
                self._push(self._process(path, started_at))
            case st.Processed(file_path=path):
                self._push(ev.Index(file_path=path))
            case st.IndexingInProgress(file_path=path, started_at=started_at):
                self._push(self._index(path, started_at))
            case st.Indexed():
                self._push(ev.Validate())
            case st.ValidationInProgress():
                self._push(self._validate())
            case (
                st.DownloadingError(details=details)
                | st.ProcessingError(details=details)
                | st.IndexingError(details=details)
                | st.ValidationError(details=details)
            ):
                self.log.warning("pipeline.error", state=self.state.kind, details=details)
                if self.config.error_policy is ErrorPolicy.AUTO_RESET:
                    self._push(ev.Reset())
            case st.NotAvailable() | st.Available() | st.Failure():
                pass

    def _push(self, event: ev.Event) -> None:
        self.events.append(event)

    def _elapsed(self, started_at: datetime) -> timedelta:
        return max(self.clock() - started_at, timedelta(0))

    def _download(self, started_at: datetime) -> ev.Event:
        source = self.config.data_source
        if self.handler is None:
            return ev.DownloadingError(details=f"don't know how to download {source}")
        try:
            path = self.handler.download(self.config.working_dir, self.config.region)
        except HANDLER_ERRORS as e:
            return ev.DownloadingError(details=f"Could not download: {e}")
        return ev.DownloadingComplete(file_path=Path(path), duration=self._elapsed(started_at))

    def _process(self, path: Path, started_at: datetime) -> ev.Event:
        source = self.config.data_source
        if self.handler is None or not self.handler.supports_transform:
            return ev.ProcessingError(details=f"don't know how to process {source}")
        try:
            out = self.handler.transform(path, self.config.working_dir, self.config.region)
        except HANDLER_ERRORS as e:
            return ev.ProcessingError(details=f"Could not process: {e}")
        return ev.ProcessingComplete(file_path=Path(out), duration=self._elapsed(started_at))

    def _index(self, path: Path, started_at: datetime) -> ev.Event:
        source = self.config.data_source
        if self.handler is None:
            return ev.IndexingError(details=f"don't know how to index {source}")
        try:
            options = self.handler.index_options(self.config.index_type)
            self.handler.index(
                self.config.handlers_dir, self.config.index_endpoint, path, options
            )
        except HANDLER_ERRORS as e:
            return ev.IndexingError(details=f"Could not index {source}: {e}")
        return ev.IndexingComplete(duration=self._elapsed(started_at))

    def _validate(self) -> ev.Event:
        try:
            self.validator.validate(self.config.index_endpoint)
        except HANDLER_ERRORS as e:
            return ev.ValidationError(details=f"Could not validate: {e}")
        return ev.ValidationComplete()

    # -- loop ------------------------------------------------------------

    def drive(self, seed: ev.Event | None = None) -> st.State:
        """
        Run the pipeline from `seed` (Download by default) until the queue
        drains or a Failure is reached. Returns the final state.

        The publish channel is closed on the way out, whatever the outcome.
        """
        if not self._driving.acquire(blocking=False):
            raise RuntimeError("Driver.drive() is already running on this driver")

        t0 = monotonic_ms()
        try:
            self.events.append(seed if seed is not None else ev.Download())
            self.log.info("Pipeline starting", seed=self.events[-1].name)

            while self.events:
                event = self.events.popleft()
                self.next(event)
                self.notifier.publish(self.state)
                self.history.append(self.state)

                if isinstance(self.state, st.Failure):
                    self.log.error("Pipeline failure", message=self.state.message)
                    break

                self.run()

            duration = timedelta(milliseconds=monotonic_ms() - t0)
            self.log.info(
                "Run Complete",
                final=self.state.kind,
                duration=format_duration(duration),
                pending=len(self.events),
            )
            return self.state
        finally:
            self.notifier.close()
            self._driving.release()


class DriverThread(threading.Thread):
    """
    Runs Driver.drive on its own thread so the caller can keep reading the
    publish channel.
    """

    def __init__(self, driver: Driver) -> None:
        super().__init__(name="pipeline-driver", daemon=True)
        self.driver = driver
        self._final: st.State | None = None
        self._error: BaseException | None = None

    def run(self) -> None:
        try:
            self._final = self.driver.drive()
        except BaseException as e:
            self._error = e

    def result(self, timeout: float | None = None) -> st.State:
        self.join(timeout)
        if self.is_alive():
            raise TimeoutError("pipeline driver still running")
        if self._error is not None:
            raise self._error
        assert self._final is not None
        return self._final


def spawn_driver(driver: Driver) -> DriverThread:
    t = DriverThread(driver)
    t.start()
    return t
