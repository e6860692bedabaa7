import time
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat().replace("+00:00", "Z")


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def format_duration(d: timedelta) -> str:
    """Return a short human-readable duration string."""
    ms = int(d.total_seconds() * 1000)
    if ms < 1000:
        return f"{ms} ms"
    return f"{ms / 1000:.2f} s"
