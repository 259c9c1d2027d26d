"""Installation of a certificate into the operating system trust store."""

import os
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath

from .command_runner import CommandResult, CommandRunner, SubprocessRunner
from .exceptions import TrustCommandError, TrustPermissionError, format_command
from .logging_config import LOGGER
from .models import OsFamily, TrustOutcome, TrustResult

MACOS_SYSTEM_KEYCHAIN = "/Library/Keychains/System.keychain"
MACOS_TRUST_SETTINGS_RIGHT = "com.apple.trust-settings.admin"


@dataclass(frozen=True)
class LinuxTrustStore:
    """Anchor directory of one Linux distribution family."""

    family: str
    marker: str
    anchor_dir: str
    refresh_command: str


DEBIAN_TRUST_STORE = LinuxTrustStore(
    family="Debian/Ubuntu",
    marker="/etc/debian_version",
    anchor_dir="/usr/local/share/ca-certificates",
    refresh_command="update-ca-certificates",
)

# Probed in order, first existing marker wins
LINUX_TRUST_STORES = (
    DEBIAN_TRUST_STORE,
    LinuxTrustStore(
        family="Arch",
        marker="/etc/arch-release",
        anchor_dir="/etc/ca-certificates/trust-source/anchors",
        refresh_command="trust extract-compat",
    ),
    LinuxTrustStore(
        family="RedHat/CentOS",
        marker="/etc/redhat-release",
        anchor_dir="/etc/pki/ca-trust/source/anchors",
        refresh_command="update-ca-trust",
    ),
    LinuxTrustStore(
        family="Fedora",
        marker="/etc/fedora-release",
        anchor_dir="/etc/pki/ca-trust/source/anchors",
        refresh_command="update-ca-trust",
    ),
)


def detect_os_family(platform: str | None = None) -> OsFamily:
    """Map a platform identifier (sys.platform by default) to an OsFamily."""
    if platform is None:
        platform = sys.platform
    if platform.startswith("linux"):
        return OsFamily.LINUX
    if platform == "darwin":
        return OsFamily.MACOS
    return OsFamily.UNSUPPORTED


def derive_ca_name(cert_path: str | os.PathLike[str]) -> str:
    """Build a trust-store file name from the certificate path.

    Uses the components at positions 3, 2 and 0 counted from the end, e.g.
    ``.../<ca>/<kind>/<app>/<file>.crt`` gives ``<ca>-<kind>-<file>.crt``.

    Raises:
        ValueError: If the path has fewer than four components
    """
    path = PurePath(cert_path)
    parts = [part for part in path.parts if part != path.anchor]
    if len(parts) < 4:
        raise ValueError(
            f"certificate path needs at least 4 components to derive a CA name: {cert_path}"
        )
    reversed_parts = parts[::-1]
    return "-".join((reversed_parts[3], reversed_parts[2], reversed_parts[0]))


def select_linux_trust_store(
    exists: Callable[[str], bool] = os.path.exists,
) -> LinuxTrustStore:
    """Pick the trust store of the first distribution whose marker file exists."""
    for store in LINUX_TRUST_STORES:
        if exists(store.marker):
            return store
    return DEBIAN_TRUST_STORE


class TrustAnchor:
    """Registers certificates as trusted on Linux and macOS hosts."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        platform: str | None = None,
        exists: Callable[[str], bool] = os.path.exists,
    ) -> None:
        """Initialize trust anchor.

        Args:
            runner: Executes sudo/security commands, defaults to SubprocessRunner
            platform: Platform identifier, defaults to sys.platform
            exists: File probe used for distribution marker files
        """
        self.runner = runner or SubprocessRunner()
        self.os_family = detect_os_family(platform)
        self.exists = exists

    def trust(self, cert_path: str | os.PathLike[str]) -> TrustResult:
        """Install the certificate into the trust store of the current OS.

        Returns:
            TrustResult; UNSUPPORTED outcome for unknown operating systems

        Raises:
            ValueError: If a Linux CA name cannot be derived from the path
            TrustPermissionError: If a privilege grant or revoke fails
            TrustCommandError: If copying or adding the certificate fails
        """
        LOGGER.info("OS family: %s", self.os_family.value)
        if self.os_family is OsFamily.LINUX:
            return self._trust_on_linux(Path(cert_path))
        if self.os_family is OsFamily.MACOS:
            return self._trust_on_macos(Path(cert_path))

        LOGGER.warning("Unknown OS. Can not trust the cert: %s", cert_path)
        return TrustResult(outcome=TrustOutcome.UNSUPPORTED, os_family=self.os_family)

    def _trust_on_linux(self, cert_path: Path) -> TrustResult:
        LOGGER.info("%s is being trusted on Linux...", cert_path)
        ca_name = derive_ca_name(cert_path)
        store = select_linux_trust_store(self.exists)
        anchor_path = Path(store.anchor_dir) / ca_name
        LOGGER.debug("Using %s trust store at %s", store.family, store.anchor_dir)

        command = ["sudo", "cp", str(cert_path), str(anchor_path)]
        result = self._run(command)
        if not result.ok:
            raise TrustCommandError(
                f"failed to add cert to {store.family} trust store", command, result.output
            )

        LOGGER.info("%s copied to %s", cert_path, anchor_path)
        # TODO: decide whether to run the refresh command ourselves
        LOGGER.info("Run 'sudo %s' if the cert is not picked up", store.refresh_command)
        return TrustResult(
            outcome=TrustOutcome.TRUSTED, os_family=self.os_family, anchor_path=anchor_path
        )

    def _trust_on_macos(self, cert_path: Path) -> TrustResult:
        LOGGER.info("%s is being trusted on macOS...", cert_path)

        if self._run(["security", "verify-cert", "-c", str(cert_path)]).ok:
            LOGGER.info("%s is already found on keychain", cert_path)
            return TrustResult(outcome=TrustOutcome.ALREADY_TRUSTED, os_family=self.os_family)

        allow_command = [
            "sudo", "security", "authorizationdb", "write",
            MACOS_TRUST_SETTINGS_RIGHT, "allow",
        ]
        result = self._run(allow_command)
        if not result.ok:
            raise TrustPermissionError(
                "failed while getting permission to add cert to the keychain",
                allow_command,
                result.output,
            )

        add_command = [
            "sudo", "security", "add-trusted-cert", "-d",
            "-r", "trustRoot",
            "-k", MACOS_SYSTEM_KEYCHAIN,
            str(cert_path),
        ]
        remove_command = [
            "sudo", "security", "authorizationdb", "remove", MACOS_TRUST_SETTINGS_RIGHT,
        ]
        try:
            add_result = self._run(add_command)
        finally:
            # The widened right must not outlive this call
            remove_result = self._run(remove_command)

        if not add_result.ok:
            if not remove_result.ok:
                LOGGER.error(
                    "Failed while removing keychain permission: %s", remove_result.output
                )
            raise TrustCommandError("failed to add cert to keychain", add_command, add_result.output)
        if not remove_result.ok:
            raise TrustPermissionError(
                "failed while removing keychain permission", remove_command, remove_result.output
            )

        LOGGER.info("%s has been added to keychain successfully.", cert_path)
        return TrustResult(
            outcome=TrustOutcome.TRUSTED,
            os_family=self.os_family,
            anchor_path=Path(MACOS_SYSTEM_KEYCHAIN),
        )

    def _run(self, command: Sequence[str]) -> CommandResult:
        result = self.runner.run(command)
        if not result.ok:
            LOGGER.debug(
                "%s exited with status %d: %s",
                format_command(command),
                result.exit_status,
                result.output,
            )
        return result
