"""
Domain reference extraction.

A flat text scan for absolute ``http(s)://`` references.  The same scan
runs over CSP header values and raw script bodies, so it makes no
assumptions about JavaScript syntax.
"""

from __future__ import annotations

import re

# Whitespace, quotes and angle brackets end a reference, as does ``;``
# which separates CSP directives.
DOMAIN_PATTERN = re.compile(r"https?://[^\s\"'<>;]+")


def extract_domains(text: str) -> set[str]:
    """Return every distinct absolute URL referenced in *text*.

    Matches are compared by exact string equality; no scheme or host
    normalisation is applied.  Text without matches yields an empty set.
    """
    if not text:
        return set()
    return set(DOMAIN_PATTERN.findall(text))
