from __future__ import annotations

"""State identity: decides whether a freshly loaded page is a screen we already have.

The default key is URL path plus document title. Two different screens that
share both (a modal opened without a route change, for example) collapse into
one state; use the ``url-title-content`` strategy when that matters.
"""

import hashlib
from typing import Any, Dict, Type
from urllib.parse import urlparse

from .models import PageSnapshot


def content_hash(excerpt: str | None) -> str:
    """Short stable digest of a page text excerpt (first 500 characters)."""
    text = (excerpt or "").strip()[:500]
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def normalize_path(url: str) -> str:
    """Reduce a full URL or bare path to its path component."""
    path = urlparse(url).path if "://" in url else url.split("?", 1)[0].split("#", 1)[0]
    return path or "/"


class Fingerprinter:
    """Default strategy: ``"<path>:<title>"``."""

    name = "url-title"

    def fingerprint(self, snapshot: PageSnapshot) -> str:
        return f"{normalize_path(snapshot.path)}:{snapshot.title}"

    def snapshot(self, raw: Dict[str, Any]) -> PageSnapshot:
        """Build a snapshot from the in-page evaluation result."""
        return PageSnapshot(
            path=normalize_path(str(raw.get("url") or "/")),
            title=str(raw.get("title") or ""),
            content_hash=content_hash(raw.get("content")),
        )


class ContentFingerprinter(Fingerprinter):
    """Stricter strategy that also separates screens by visible content."""

    name = "url-title-content"

    def fingerprint(self, snapshot: PageSnapshot) -> str:
        return f"{super().fingerprint(snapshot)}#{snapshot.content_hash}"


FINGERPRINTERS: Dict[str, Type[Fingerprinter]] = {
    Fingerprinter.name: Fingerprinter,
    ContentFingerprinter.name: ContentFingerprinter,
}


def get_fingerprinter(name: str) -> Fingerprinter:
    try:
        return FINGERPRINTERS[name]()
    except KeyError:
        raise ValueError(f"Unknown fingerprint strategy {name!r}; expected one of {sorted(FINGERPRINTERS)}") from None
