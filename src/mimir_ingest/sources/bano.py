from __future__ import annotations

from pathlib import Path

import httpx
from mimir_ingest.fetch.download import fetch

from .base import BaseHandler, IndexOptions, indexer_args, release_binary, run_command


def bano_filename(region: str) -> str:
    # departments are published zero-padded: 1 -> bano-01.csv
    if len(region) == 1:
        return f"bano-0{region}.csv"
    return f"bano-{region}.csv"


class BanoHandler(BaseHandler):
    """Point-address CSV extracts, one per French department."""

    name = "bano"

    def __init__(
        self,
        *,
        base_url: str = "http://bano.openstreetmap.fr/data/",
        client: httpx.Client | None = None,
        max_attempts: int = 3,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.client = client
        self.max_attempts = max_attempts

    def download(self, working_dir: Path, region: str) -> Path:
        url = self.base_url + bano_filename(region)
        res = fetch(
            url,
            Path(working_dir) / "bano",
            client=self.client,
            max_attempts=self.max_attempts,
        )
        return res.path

    def index(
        self,
        handlers_dir: Path,
        index_endpoint: str,
        path: Path,
        options: IndexOptions,
    ) -> None:
        run_command(
            release_binary(handlers_dir, "bano2mimir"),
            indexer_args(index_endpoint, path),
        )
