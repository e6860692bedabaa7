from __future__ import annotations

import argparse
import time
import uuid
from typing import Iterator

from mimir_ingest.core import (
    Settings,
    UnknownSourceError,
    bind,
    clear_bindings,
    configure_logging,
    format_duration,
    get_logger,
    load_settings,
)
from mimir_ingest.fetch.http import make_http_client
from mimir_ingest.pipeline import states as st
from mimir_ingest.pipeline.config import PipelineConfig
from mimir_ingest.pipeline.driver import Driver, DriverThread, spawn_driver
from mimir_ingest.pipeline.notifier import Notifier, StateSubscriber, ZmqPublisher
from mimir_ingest.pipeline.validation import Validator
from mimir_ingest.sources import build_handler_registry, get_handler
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()

_POLL_MS = 200


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mimir-ingest")
    sub = p.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="Download, process and index one region")
    run.add_argument(
        "-i",
        "--index-type",
        required=True,
        help="Index type (admins, streets, addresses, ...)",
    )
    run.add_argument(
        "-d",
        "--data-source",
        required=True,
        help="Data source (bano, osm, cosmogony, ntfs)",
    )
    run.add_argument("-r", "--region", required=True, help="Region")

    listen = sub.add_parser("listen", help="Print the states published by a run")
    listen.add_argument("--endpoint", default=None, help="Publisher endpoint")
    listen.add_argument("--topic", default=None, help="Topic to subscribe to")

    return p


def describe(state: st.State) -> Text:
    """One line summary of a state for the console."""
    text = Text(state.kind, style="bold")
    match state:
        case st.Downloaded(file_path=p, duration=d) | st.Processed(file_path=p, duration=d):
            text.append(f"  {p} in {format_duration(d)}")
        case st.ProcessingInProgress(file_path=p) | st.IndexingInProgress(file_path=p):
            text.append(f"  {p}")
        case st.Indexed(duration=d):
            text.append(f"  in {format_duration(d)}")
        case (
            st.DownloadingError(details=msg)
            | st.ProcessingError(details=msg)
            | st.IndexingError(details=msg)
            | st.ValidationError(details=msg)
            | st.Failure(message=msg)
        ):
            text.stylize("red")
            text.append(f"  {msg}")
        case st.Available():
            text.stylize("green")
    return text


def _follow(sub: StateSubscriber, worker: DriverThread) -> Iterator[st.State]:
    """
    Yield published states until a finishing one arrives, or the driver is
    gone and nothing is left to read.
    """
    while True:
        state = sub.poll(_POLL_MS)
        if state is None:
            if not worker.is_alive():
                return
            continue
        yield state
        if st.is_finished(state):
            return


def _cmd_run(args: argparse.Namespace, s: Settings) -> int:
    log = get_logger("mimir_ingest")

    cfg = PipelineConfig.from_settings(
        s,
        index_type=args.index_type,
        data_source=args.data_source,
        region=args.region,
    )
    run_id = uuid.uuid4().hex
    bind(run_id=run_id)

    console.print(
        Panel.fit(
            Text(
                f"mimir-ingest - {cfg.data_source} / {cfg.index_type} / {cfg.region}\n"
                f"run_id={run_id}\n"
                f"publish={s.publish_endpoint} topic={cfg.topic}",
                style="bold",
            ),
            title="Run",
        )
    )

    client = make_http_client(timeout=s.http_timeout_s)
    publisher: ZmqPublisher | None = None
    worker: DriverThread | None = None
    try:
        handlers = build_handler_registry(s, client=client)
        try:
            get_handler(handlers, cfg.data_source)
        except UnknownSourceError as e:
            # the driver still runs and reports the download error
            log.warning("Unknown data source", error=str(e))

        publisher = ZmqPublisher(s.publish_endpoint)
        driver = Driver(
            cfg,
            handlers=handlers,
            notifier=Notifier(publisher, cfg.topic),
            validator=Validator(
                settle_s=s.validation_settle_s,
                probe=s.validation_probe,
                client=client,
                max_attempts=s.http_max_attempts,
            ),
            logger=log,
        )

        with StateSubscriber(s.publish_endpoint, cfg.topic) as sub:
            # PUB/SUB drops messages sent before the subscription is live
            time.sleep(s.subscribe_settle_s)
            worker = spawn_driver(driver)
            with console.status("[bold]pipeline[/]", spinner="dots"):
                for state in _follow(sub, worker):
                    console.print(describe(state))
            final = worker.result()
    finally:
        # once spawned, the driver closes the publisher itself
        if worker is None and publisher is not None:
            publisher.close()
        client.close()
        clear_bindings()

    tbl = Table(title="Result", show_header=True, box=None)
    tbl.add_column("step")
    tbl.add_column("state")
    for i, state in enumerate(driver.history, start=1):
        tbl.add_row(str(i), describe(state))
    console.print(tbl)

    ok = isinstance(final, st.Available)
    console.print("[green]ok[/green]" if ok else f"[red]failed[/red] ({final.kind})")
    return 0 if ok else 1


def _cmd_listen(args: argparse.Namespace, s: Settings) -> int:
    endpoint = args.endpoint or s.publish_endpoint
    topic = args.topic or s.topic
    console.print(f"listening on {endpoint} topic={topic}")

    last: st.State | None = None
    with StateSubscriber(endpoint, topic) as sub:
        for state in sub:
            console.print(describe(state))
            last = state
    return 0 if isinstance(last, st.Available) else 1


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    s = load_settings()
    configure_logging(level=s.log_level, fmt=s.log_format)

    if args.cmd == "run":
        return _cmd_run(args, s)
    return _cmd_listen(args, s)


if __name__ == "__main__":
    raise SystemExit(main())
