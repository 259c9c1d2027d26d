#!/usr/bin/env python3
"""Create an application certificate signed by the intermediate CA."""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from crtforge.lib.command_runner import CommandRunner
from crtforge.lib.config import ForgeConfig, IssuanceRequest
from crtforge.lib.exceptions import ProvisioningError, ToolError, TrustError
from crtforge.lib.issuance_pipeline import IssuancePipeline, report_summary
from crtforge.lib.logging_config import LOGGER, set_verbosity
from crtforge.lib.trust_anchor import TrustAnchor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create application certificate")
    parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory under which the <app-name>/ artifact directory is created",
    )
    parser.add_argument(
        "--app-name",
        required=True,
        help="Application name (used as directory and file base name)",
    )
    parser.add_argument(
        "--intermediate-ca-cnf",
        type=Path,
        required=True,
        help="Intermediate CA OpenSSL config file",
    )
    parser.add_argument(
        "--intermediate-ca-crt",
        type=Path,
        required=True,
        help="Intermediate CA certificate used to sign the app certificate",
    )
    parser.add_argument(
        "--intermediate-ca-key",
        type=Path,
        required=True,
        help="Intermediate CA private key",
    )
    parser.add_argument(
        "--root-ca-crt",
        type=Path,
        required=True,
        help="Root CA certificate appended to fullchain.crt",
    )
    parser.add_argument(
        "--common-name",
        help="Certificate common name (default: app name)",
    )
    parser.add_argument(
        "--alt-name",
        action="append",
        dest="alt_names",
        default=[],
        help="Subject alternative DNS name, repeatable (default: common name)",
    )
    parser.add_argument(
        "--p12",
        action="store_true",
        help="Also export a password-protected <app-name>.pfx bundle",
    )
    parser.add_argument(
        "--pfx-password",
        help="Password for the .pfx bundle (default: CRTFORGE_PFX_PASSWORD or 'changeit')",
    )
    parser.add_argument(
        "--trust",
        action="store_true",
        help="Add the issued certificate to the OS trust store",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable debug logging",
    )
    return parser


def main(
    argv: Sequence[str] | None = None,
    config: ForgeConfig | None = None,
    runner: CommandRunner | None = None,
) -> int:
    """Issue application certificate, optionally trusting it afterwards.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)
    set_verbosity(args.verbose)

    if config is None:
        config = ForgeConfig.from_env()
    if args.pfx_password:
        config.export_password = args.pfx_password

    common_name = args.common_name or args.app_name
    try:
        request = IssuanceRequest(
            output_dir=args.output_dir,
            app_name=args.app_name,
            intermediate_ca_cnf=args.intermediate_ca_cnf,
            intermediate_ca_crt=args.intermediate_ca_crt,
            intermediate_ca_key=args.intermediate_ca_key,
            root_ca_crt=args.root_ca_crt,
            common_name=common_name,
            alt_names=tuple(args.alt_names or [common_name]),
            export_bundle=args.p12,
        )
    except ValueError as e:
        LOGGER.error("Invalid request: %s", e)
        return 1

    try:
        LOGGER.info("Creating certificate for: %s", request.app_name)
        result = IssuancePipeline(config, runner).issue(request)
    except ToolError as e:
        LOGGER.error("App certificate creation failed: %s", e)
        LOGGER.error("Command output: %s", e.output)
        return 1
    except ProvisioningError as e:
        LOGGER.error("App certificate creation failed: %s", e)
        return 1

    report_summary(result, request, config)

    if args.trust:
        try:
            TrustAnchor(runner).trust(result.artifacts.cert_path)
        except (TrustError, ValueError) as e:
            # Certificate material is complete; trusting can be retried by hand
            LOGGER.error("Error while trusting cert: %s", e)
            if isinstance(e, TrustError):
                LOGGER.error("Command output: %s", e.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
