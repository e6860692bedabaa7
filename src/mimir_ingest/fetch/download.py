from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog
from mimir_ingest.core import atomic_replace, ensure_dir, safe_unlink, tmp_path_for
from mimir_ingest.core.errors import FetchIOError

from .filename import filename_from_url, parse_url, sanitize
from .http import make_http_client, stream_get_to_file_with_retries

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class FetchResult:
    path: Path
    bytes_written: int


def fetch(
    url: str,
    destination_dir: Path,
    *,
    filename: str | None = None,
    client: httpx.Client | None = None,
    max_attempts: int = 3,
) -> FetchResult:
    """
    Download `url` into `destination_dir`.

    - creates `destination_dir` when missing
    - returns the existing file with bytes_written=0 when the target is already there
    - streams into a temp file next to the target and renames it into place
    """
    parse_url(url)
    name = sanitize(filename) if filename else filename_from_url(url)

    destination_dir = Path(destination_dir)
    try:
        ensure_dir(destination_dir)
    except OSError as e:
        raise FetchIOError(f"Could not create {destination_dir}: {e}") from e

    target = destination_dir / name
    if target.exists():
        log.info("fetch.skip", url=url, path=str(target), reason="exists")
        return FetchResult(path=target, bytes_written=0)

    own_client = client is None
    http = client or make_http_client()
    tmp: Path | None = None
    try:
        try:
            tmp = tmp_path_for(target)
        except OSError as e:
            raise FetchIOError(f"Could not create file in {destination_dir}: {e}") from e

        log.info("fetch.start", url=url, path=str(target))
        try:
            written = stream_get_to_file_with_retries(
                http, url=url, dest_path=tmp, max_attempts=max_attempts
            )
            atomic_replace(tmp, target)
        except OSError as e:
            raise FetchIOError(f"Could not write to {target}: {e}") from e

        log.info("fetch.finish", url=url, path=str(target), bytes=written)
        return FetchResult(path=target, bytes_written=written)

    finally:
        if tmp is not None:
            safe_unlink(tmp)
        if own_client:
            http.close()
