from __future__ import annotations

from typing import Mapping

import httpx
from mimir_ingest.core.config import Settings
from mimir_ingest.core.errors import UnknownSourceError

from .bano import BanoHandler
from .base import SourceHandler
from .cosmogony import CosmogonyHandler
from .ntfs import NtfsHandler
from .osm import OsmHandler


def build_handler_registry(
    settings: Settings, *, client: httpx.Client | None = None
) -> dict[str, SourceHandler]:
    """
    Map each known data source id to its handler.

    `client` is shared by every handler that downloads; when omitted each
    fetch opens and closes its own.
    """
    attempts = settings.http_max_attempts
    handlers: list[SourceHandler] = [
        BanoHandler(
            base_url=settings.bano_base_url, client=client, max_attempts=attempts
        ),
        OsmHandler(
            base_url=settings.osm_base_url,
            city_level=settings.osm_city_level,
            client=client,
            max_attempts=attempts,
        ),
        CosmogonyHandler(
            cosmogony_dir=settings.cosmogony_dir,
            country_code=settings.country_code,
            osm_base_url=settings.osm_base_url,
            client=client,
            max_attempts=attempts,
        ),
        NtfsHandler(
            portal_url=settings.ntfs_portal_url, client=client, max_attempts=attempts
        ),
    ]
    out: dict[str, SourceHandler] = {}
    for h in handlers:
        if h.name in out:
            raise ValueError(f"Duplicate handler for data source: {h.name}")
        out[h.name] = h
    return out


def known_sources(registry: Mapping[str, SourceHandler]) -> list[str]:
    return sorted(registry.keys())


def get_handler(registry: Mapping[str, SourceHandler], source: str) -> SourceHandler:
    try:
        return registry[source]
    except KeyError:
        raise UnknownSourceError(
            f"Unknown data source: {source} (known: {', '.join(known_sources(registry))})"
        ) from None
