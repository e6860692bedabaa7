from __future__ import annotations

from pathlib import Path

import httpx
from mimir_ingest.core.errors import UnsupportedIndexTypeError
from mimir_ingest.fetch.download import fetch

from .base import BaseHandler, IndexOptions, indexer_args, release_binary, run_command

INDEX_TYPES = ("admins", "streets")


def osm_filename(region: str) -> str:
    return f"{region}-latest.osm.pbf"


def download_osm_region(
    working_dir: Path,
    region: str,
    *,
    base_url: str,
    client: httpx.Client | None = None,
    max_attempts: int = 3,
) -> Path:
    """
    Fetch the pbf extract for a region into <working_dir>/osm.

    Regions are resolved against a single extract index (France by default).
    """
    base = base_url if base_url.endswith("/") else base_url + "/"
    res = fetch(
        base + osm_filename(region),
        Path(working_dir) / "osm",
        client=client,
        max_attempts=max_attempts,
    )
    return res.path


def osm_index_options(index_type: str, *, city_level: int = 8) -> IndexOptions:
    if index_type == "admins":
        return IndexOptions(import_admin=True, city_level=city_level)
    if index_type == "streets":
        return IndexOptions(import_way=True, city_level=city_level)
    raise UnsupportedIndexTypeError(
        f"Could not index {index_type} using OSM (expected one of {', '.join(INDEX_TYPES)})"
    )


class OsmHandler(BaseHandler):
    """Map extracts indexed as administrative regions or streets."""

    name = "osm"

    def __init__(
        self,
        *,
        base_url: str = "https://download.geofabrik.de/europe/france/",
        city_level: int = 8,
        client: httpx.Client | None = None,
        max_attempts: int = 3,
    ) -> None:
        self.base_url = base_url
        self.city_level = city_level
        self.client = client
        self.max_attempts = max_attempts

    def download(self, working_dir: Path, region: str) -> Path:
        return download_osm_region(
            working_dir,
            region,
            base_url=self.base_url,
            client=self.client,
            max_attempts=self.max_attempts,
        )

    def index_options(self, index_type: str) -> IndexOptions:
        return osm_index_options(index_type, city_level=self.city_level)

    def index(
        self,
        handlers_dir: Path,
        index_endpoint: str,
        path: Path,
        options: IndexOptions,
    ) -> None:
        args = indexer_args(index_endpoint, path)
        if options.import_way:
            args.append("--import-way")
        if options.import_admin:
            args.append("--import-admin")
        if options.import_poi:
            args.append("--import-poi")
        args += ["--city-level", str(options.city_level)]
        run_command(release_binary(handlers_dir, "osm2mimir"), args)
