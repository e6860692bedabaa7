from __future__ import annotations

import time
from typing import Callable

import httpx
import structlog
from mimir_ingest.core.errors import NetworkError, ValidationFailed
from mimir_ingest.fetch.http import make_http_client, request_with_retries

log = structlog.get_logger(__name__)

HEALTHY = ("green", "yellow")


class Validator:
    """
    Decide whether freshly indexed data is available.

    Waits `settle_s` for the index to refresh, then, when `probe` is set,
    asks the search engine for its cluster health.
    """

    def __init__(
        self,
        *,
        settle_s: float = 1.0,
        probe: bool = False,
        client: httpx.Client | None = None,
        max_attempts: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settle_s = settle_s
        self.probe = probe
        self.client = client
        self.max_attempts = max_attempts
        self._sleep = sleep

    def validate(self, index_endpoint: str) -> None:
        if self.settle_s > 0:
            self._sleep(self.settle_s)
        if self.probe:
            self._check_health(index_endpoint)

    def _check_health(self, index_endpoint: str) -> None:
        url = index_endpoint.rstrip("/") + "/_cluster/health"
        client = self.client or make_http_client(timeout=10.0)
        try:
            resp = request_with_retries(
                client, method="GET", url=url, max_attempts=self.max_attempts
            )
            body = resp.json()
        except NetworkError as e:
            raise ValidationFailed(f"Index endpoint not reachable: {e}") from e
        except ValueError as e:
            raise ValidationFailed(f"Unexpected health response from {url}: {e}") from e
        finally:
            if self.client is None:
                client.close()

        status = body.get("status") if isinstance(body, dict) else None
        log.info("validation.health", url=url, status=status)
        if status not in HEALTHY:
            raise ValidationFailed(f"Index endpoint health is {status!r}")
