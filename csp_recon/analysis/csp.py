"""
Content-Security-Policy header analysis.

Classifies response headers as CSP-bearing and pulls two things out of
their values: script URLs worth fetching, and general domain references.
"""

from __future__ import annotations

import re

import pydantic

from csp_recon.analysis import domains

# Substrings matched against the lowercased header name.  Loose on purpose:
# covers Content-Security-Policy, its Report-Only twin and vendor variants
# such as X-CSP-Report.
CSP_MARKERS = ("csp", "content-security-policy")

# The reference must end right after ``.js``; ``config.json`` is not a script.
SCRIPT_URL_PATTERN = re.compile(r"https?://[^\s\"'<>;]+\.js(?![^\s\"'<>;])")


class CSPAnalysis(pydantic.BaseModel):
    """What a single CSP header value references."""

    domains: set[str] = pydantic.Field(default_factory=set)
    script_urls: list[str] = pydantic.Field(default_factory=list)


def is_csp_header(name: str) -> bool:
    """Check whether a header name looks like a CSP header."""
    lowered = name.lower()
    return any(marker in lowered for marker in CSP_MARKERS)


def extract_script_urls(csp_value: str) -> list[str]:
    """Find ``.js`` URLs embedded in a CSP value.

    Duplicates are kept; the result feeds the fetch queue, not a set.
    """
    return SCRIPT_URL_PATTERN.findall(csp_value)


def extract_domains(csp_value: str) -> set[str]:
    """Find every domain reference in a CSP value."""
    return domains.extract_domains(csp_value)


def analyze_header(csp_value: str) -> CSPAnalysis:
    """Run both extractions over one CSP value."""
    return CSPAnalysis(
        domains=extract_domains(csp_value),
        script_urls=extract_script_urls(csp_value),
    )
