"""
Command-line entry point.

Usage: ``csp-recon <URL>``

Loads the page, prints every domain referenced by its CSP headers and
scripts to stdout, and sends all diagnostics to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

import dotenv
import pydantic

from csp_recon import config as config_mod
from csp_recon.models import network
from csp_recon.pipeline import coordinator
from csp_recon.utils import errors, logger

log = logger.create_logger("CLI")

RESULT_HEADING = "\nDetected the following domains from CSP and Referenced JS:"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (one positional URL, no flags)."""
    parser = argparse.ArgumentParser(
        prog="csp-recon",
        description="List external domains referenced by a page's CSP headers and scripts.",
    )
    parser.add_argument("url", help="The page to load")
    return parser


def render_result(result: network.ReconResult) -> str:
    """Format a run result as the stdout listing."""
    lines = [RESULT_HEADING, *sorted(result.domains)]
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)
    dotenv.load_dotenv()

    try:
        cfg = config_mod.ReconConfig()
    except pydantic.ValidationError as exc:
        log.error("Invalid configuration", {"error": str(exc)})
        return 1

    log.section(f"CSP recon: {args.url}")
    try:
        result = asyncio.run(coordinator.ReconCoordinator(cfg).run(args.url))
    except errors.ReconError as exc:
        log.error(errors.get_error_message(exc))
        return 1

    if result.timed_out:
        log.warn("Run hit its deadline; the listing may be incomplete")
    print(render_result(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
