from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Mapping, TypeVar

import httpx
import structlog
from mimir_ingest.core import safe_unlink
from mimir_ingest.core.errors import NetworkError
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt
from tenacity.wait import wait_base

_RETRYABLE_STATUSES: set[int] = {408, 429, 500, 502, 503, 504}

log = structlog.get_logger(__name__)

T = TypeVar("T")


class HttpStatusError(NetworkError):
    """
    Non-retryable HTTP status (e.g., 400/401/403/404) or any status not in allowed.
    """

    def __init__(
        self,
        *,
        method: str,
        url: str,
        status_code: int,
        body_snippet: str | None,
    ) -> None:
        msg = f"HTTP {status_code} for {method} {url}"
        if body_snippet:
            msg += f" (body: {body_snippet})"
        super().__init__(msg)
        self.method = method
        self.url = url
        self.status_code = status_code


class HttpRetriesExceeded(NetworkError):
    def __init__(
        self, *, method: str, url: str, attempts: int, last_error: BaseException
    ) -> None:
        super().__init__(
            f"HTTP retries exceeded for {method} {url} (attempts={attempts}): {last_error}"
        )
        self.method = method
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


def make_http_client(
    *,
    timeout: httpx.Timeout | float | None = None,
    follow_redirects: bool = True,
    user_agent: str = "mimir-ingest/0.1",
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    if timeout is None:
        timeout = httpx.Timeout(connect=5.0, read=300.0, write=30.0, pool=5.0)
    return httpx.Client(
        timeout=timeout,
        follow_redirects=follow_redirects,
        headers={"User-Agent": user_agent},
        transport=transport,
    )


def is_retryable_status(code: int) -> bool:
    return code in _RETRYABLE_STATUSES


class DeterministicExponentialBackoff(wait_base):
    def __init__(self, *, base: float = 0.5, cap: float = 4.0) -> None:
        self._base = float(base)
        self._cap = float(cap)

    def __call__(self, retry_state) -> float:
        n = retry_state.attempt_number
        if n <= 1:
            return 0.0
        return min(self._cap, self._base * (2 ** (n - 2)))


class RetryableHttpStatus(Exception):
    """Transient HTTP status; raised inside an attempt so tenacity retries it."""

    def __init__(self, *, method: str, url: str, status_code: int) -> None:
        super().__init__(f"HTTP {status_code} for {method} {url}")
        self.method = method
        self.url = url
        self.status_code = status_code


def _retrying(
    *,
    method: str,
    url: str,
    max_attempts: int,
    base: float,
    cap: float,
) -> Retrying:
    def _before_sleep(retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        sleep = retry_state.next_action.sleep if retry_state.next_action else None
        log.warning(
            "http.retry",
            method=method,
            url=url,
            attempt=retry_state.attempt_number,
            sleep_s=sleep,
            error=repr(exc) if exc else None,
        )

    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=DeterministicExponentialBackoff(base=base, cap=cap),
        retry=retry_if_exception_type(
            (httpx.TimeoutException, httpx.TransportError, RetryableHttpStatus)
        ),
        reraise=False,
        before_sleep=_before_sleep,
    )


def _run_with_retries(
    *,
    method: str,
    url: str,
    max_attempts: int,
    backoff_base: float,
    backoff_cap: float,
    fn: Callable[[], T],
) -> T:
    retrying = _retrying(
        method=method,
        url=url,
        max_attempts=max_attempts,
        base=backoff_base,
        cap=backoff_cap,
    )

    attempt_no = 0

    try:
        for attempt in retrying:
            attempt_no = attempt.retry_state.attempt_number
            with attempt:
                return fn()

    except RetryError as re:
        last = re.last_attempt.exception()
        raise HttpRetriesExceeded(
            method=method,
            url=url,
            attempts=re.last_attempt.attempt_number,
            last_error=last or Exception("unknown"),
        ) from last

    except (HttpStatusError, OSError):
        raise

    except httpx.HTTPError as e:
        raise HttpRetriesExceeded(
            method=method,
            url=url,
            attempts=max(attempt_no, 1),
            last_error=e,
        ) from e

    raise RuntimeError("unreachable")


def _body_snippet(resp: httpx.Response, *, limit: int = 200) -> str | None:
    """
    Bounded snippet of an error body for debugging.
    """
    try:
        if resp.is_stream_consumed or resp.is_closed:
            s = (resp.text or "")[:limit].strip()
            return s or None
        buf = bytearray()
        for chunk in resp.iter_bytes(chunk_size=min(4096, limit * 4)):
            if not chunk:
                continue
            buf.extend(chunk)
            if len(buf) >= limit * 4:
                break
        s = bytes(buf).decode("utf-8", errors="replace")[:limit].strip()
        return s or None
    except httpx.HTTPError:
        return None


def _raise_for_status(resp: httpx.Response, *, method: str, url: str) -> None:
    if resp.is_success:
        return
    snippet = _body_snippet(resp)
    if is_retryable_status(resp.status_code):
        raise RetryableHttpStatus(method=method, url=url, status_code=resp.status_code)
    raise HttpStatusError(
        method=method,
        url=url,
        status_code=resp.status_code,
        body_snippet=snippet,
    )


def request_with_retries(
    client: httpx.Client,
    *,
    method: str,
    url: str,
    params: Mapping[str, str] | None = None,
    headers: Mapping[str, str] | None = None,
    max_attempts: int = 3,
    backoff_base: float = 0.5,
    backoff_cap: float = 4.0,
) -> httpx.Response:
    """Send a request; any 2xx is returned, anything else raises."""

    def _do() -> httpx.Response:
        resp = client.request(method, url, params=params, headers=headers)
        try:
            _raise_for_status(resp, method=method, url=url)
        except Exception:
            resp.close()
            raise
        return resp

    return _run_with_retries(
        method=method,
        url=url,
        max_attempts=max_attempts,
        backoff_base=backoff_base,
        backoff_cap=backoff_cap,
        fn=_do,
    )


def stream_get_to_file_with_retries(
    client: httpx.Client,
    *,
    url: str,
    dest_path: os.PathLike[str] | str,
    headers: Mapping[str, str] | None = None,
    max_attempts: int = 3,
    chunk_bytes: int = 1024 * 128,
    backoff_base: float = 0.5,
    backoff_cap: float = 4.0,
) -> int:
    """
    Stream a successful GET body into dest_path and return the byte count.

    Caller should pass a temp path; the atomic rename belongs to the caller.
    """
    dest = Path(dest_path)

    def _do() -> int:
        safe_unlink(dest)

        with client.stream("GET", url, headers=headers) as resp:
            _raise_for_status(resp, method="GET", url=url)

            dest.parent.mkdir(parents=True, exist_ok=True)

            total = 0
            try:
                with dest.open("wb") as f:
                    for chunk in resp.iter_bytes(chunk_size=chunk_bytes):
                        if not chunk:
                            continue
                        f.write(chunk)
                        total += len(chunk)
                    f.flush()
                    os.fsync(f.fileno())
            except Exception:
                safe_unlink(dest)
                raise

            return total

    try:
        return _run_with_retries(
            method="GET",
            url=url,
            max_attempts=max_attempts,
            backoff_base=backoff_base,
            backoff_cap=backoff_cap,
            fn=_do,
        )
    except Exception:
        safe_unlink(dest)
        raise