#!/usr/bin/env python3
"""Add a certificate to the operating system trust store."""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from crtforge.lib.command_runner import CommandRunner
from crtforge.lib.exceptions import TrustError
from crtforge.lib.logging_config import LOGGER, set_verbosity
from crtforge.lib.models import TrustOutcome
from crtforge.lib.trust_anchor import TrustAnchor


def main(
    argv: Sequence[str] | None = None,
    runner: CommandRunner | None = None,
    platform: str | None = None,
) -> int:
    """Trust the given certificate.

    Returns:
        Exit code (0 when trusted, already trusted or unsupported; 1 on failure)
    """
    parser = argparse.ArgumentParser(description="Trust certificate on this host")
    parser.add_argument("cert_path", type=Path, help="Certificate file to trust")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)
    set_verbosity(args.verbose)

    try:
        result = TrustAnchor(runner, platform=platform).trust(args.cert_path)
    except TrustError as e:
        LOGGER.error("Error while trusting cert: %s", e)
        LOGGER.error("Command output: %s", e.output)
        return 1
    except ValueError as e:
        LOGGER.error("Error while trusting cert: %s", e)
        return 1

    if result.outcome is TrustOutcome.UNSUPPORTED:
        LOGGER.warning("Trust the cert manually: %s", args.cert_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
