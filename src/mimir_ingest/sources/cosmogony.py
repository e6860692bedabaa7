from __future__ import annotations

from pathlib import Path

import httpx
from mimir_ingest.core import ensure_dir

from .base import BaseHandler, IndexOptions, indexer_args, release_binary, run_command
from .osm import download_osm_region


class CosmogonyHandler(BaseHandler):
    """
    Region hierarchy built from a map extract.

    The pbf is downloaded like the osm source, then the cosmogony tool turns it
    into a boundaries file which is what actually gets indexed.
    """

    name = "cosmogony"
    supports_transform = True

    def __init__(
        self,
        *,
        cosmogony_dir: Path,
        country_code: str = "FR",
        osm_base_url: str = "https://download.geofabrik.de/europe/france/",
        client: httpx.Client | None = None,
        max_attempts: int = 3,
    ) -> None:
        self.cosmogony_dir = Path(cosmogony_dir)
        self.country_code = country_code
        self.osm_base_url = osm_base_url
        self.client = client
        self.max_attempts = max_attempts

    def download(self, working_dir: Path, region: str) -> Path:
        return download_osm_region(
            working_dir,
            region,
            base_url=self.osm_base_url,
            client=self.client,
            max_attempts=self.max_attempts,
        )

    def transform(self, input_path: Path, working_dir: Path, region: str) -> Path:
        out_dir = ensure_dir(Path(working_dir) / "cosmogony")

        output = out_dir / f"{region}.json.gz"
        run_command(
            release_binary(self.cosmogony_dir, "cosmogony"),
            [
                "--country-code",
                self.country_code,
                "--input",
                input_path,
                "--output",
                output,
            ],
        )
        return output

    def index(
        self,
        handlers_dir: Path,
        index_endpoint: str,
        path: Path,
        options: IndexOptions,
    ) -> None:
        run_command(
            release_binary(handlers_dir, "cosmogony2mimir"),
            indexer_args(index_endpoint, path),
        )
