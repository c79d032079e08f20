"""URL helpers shared by classification, enforcement and grouping.

None of these raise on malformed input; unparsable URLs yield None/False.
"""

from __future__ import annotations

import re
import urllib.parse
from typing import Iterable, List, Optional

_SCHEME_PREFIX = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)


def hostname(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        host = urllib.parse.urlsplit(url).hostname
    except ValueError:
        return None
    return host or None


def scheme(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        parsed = urllib.parse.urlsplit(url)
    except ValueError:
        return None
    return parsed.scheme.lower() or None


def is_internal_url(url: Optional[str], internal_schemes: Iterable[str]) -> bool:
    s = scheme(url)
    return s is not None and s in {x.lower().rstrip(":") for x in internal_schemes}


def host_contains_any(host: str, needles: Iterable[str]) -> bool:
    """Substring containment: "google.com" matches "mail.google.com"."""
    return any(n and n in host for n in needles)


def normalize_allow_entry(entry: str) -> str:
    entry = _SCHEME_PREFIX.sub("", entry.strip().lower())
    return entry.rstrip("/")


def normalize_allowlist(entries: Iterable[str]) -> List[str]:
    """Strip schemes and trailing slashes; drop entries left empty. Order is kept."""
    out = []
    for raw in entries:
        entry = normalize_allow_entry(raw)
        if entry:
            out.append(entry)
    return out
