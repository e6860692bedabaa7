from .config import Settings, load_settings
from .errors import (
    CommandError,
    ExecutableNotFoundError,
    FetchError,
    FetchIOError,
    IngestError,
    MalformedUrlError,
    NetworkError,
    ProtocolError,
    PublishError,
    UnknownSourceError,
    UnsupportedIndexTypeError,
    ValidationFailed,
)
from .fs import atomic_replace, ensure_dir, fsync_dir, safe_unlink, tmp_path_for
from .logging import ILogger, bind, clear_bindings, configure_logging, get_logger
from .time import format_duration, monotonic_ms, utc_now, utc_now_iso

__all__ = [
    "Settings",
    "load_settings",
    "CommandError",
    "ExecutableNotFoundError",
    "FetchError",
    "FetchIOError",
    "IngestError",
    "MalformedUrlError",
    "NetworkError",
    "ProtocolError",
    "PublishError",
    "UnknownSourceError",
    "UnsupportedIndexTypeError",
    "ValidationFailed",
    "atomic_replace",
    "ensure_dir",
    "fsync_dir",
    "safe_unlink",
    "tmp_path_for",
    "ILogger",
    "bind",
    "clear_bindings",
    "configure_logging",
    "get_logger",
    "format_duration",
    "monotonic_ms",
    "utc_now",
    "utc_now_iso",
]
