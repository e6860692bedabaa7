from __future__ import annotations

import re

import httpx
from mimir_ingest.core.errors import MalformedUrlError

_safe_re = re.compile(r"[^a-zA-Z0-9._\-]+")


def sanitize(name: str) -> str:
    name = name.strip().strip("/")
    name = _safe_re.sub("_", name)
    return name or "artifact"


def parse_url(link: str) -> httpx.URL:
    """Parse an http(s) URL, rejecting anything we could not GET."""
    try:
        url = httpx.URL(link)
    except (httpx.InvalidURL, TypeError) as e:
        raise MalformedUrlError(f"Could not parse URL {link!r}: {e}") from e

    if url.scheme not in ("http", "https"):
        raise MalformedUrlError(f"Unsupported URL scheme in {link!r}")
    if not url.host:
        raise MalformedUrlError(f"URL has no host: {link!r}")
    return url


def filename_from_url(link: str) -> str:
    # httpx.URL.path is already percent-decoded
    last = parse_url(link).path.split("/")[-1]
    return sanitize(last)
