from .bano import BanoHandler
from .base import BaseHandler, IndexOptions, SourceHandler, run_command
from .cosmogony import CosmogonyHandler
from .ntfs import NtfsHandler
from .osm import OsmHandler
from .registry import build_handler_registry, get_handler, known_sources

__all__ = [
    "BanoHandler",
    "BaseHandler",
    "CosmogonyHandler",
    "IndexOptions",
    "NtfsHandler",
    "OsmHandler",
    "SourceHandler",
    "build_handler_registry",
    "get_handler",
    "known_sources",
    "run_command",
]
