"""Error types raised by the issuance pipeline and the trust anchor."""

from collections.abc import Sequence


class CrtForgeError(Exception):
    """Base class for all crtforge errors."""


class ProvisioningError(CrtForgeError):
    """Fatal failure while building the certificate artifacts.

    A half-built chain must never be used, so callers abort on this error.
    """

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step


class ArtifactIOError(ProvisioningError):
    """A filesystem operation on an artifact or CA file failed."""

    def __init__(self, step: str, path: object, error: OSError) -> None:
        super().__init__(step, f"{path}: {error.strerror or error}")
        self.path = path
        self.error = error


class ToolError(ProvisioningError):
    """An external tool exited with a non-zero status."""

    def __init__(
        self, step: str, command: Sequence[str], exit_status: int, output: str
    ) -> None:
        super().__init__(
            step, f"{format_command(command)} exited with status {exit_status}"
        )
        self.command = list(command)
        self.exit_status = exit_status
        self.output = output


class TrustError(CrtForgeError):
    """Recoverable failure while registering a certificate in the trust store."""

    def __init__(self, message: str, command: Sequence[str], output: str) -> None:
        super().__init__(message)
        self.command = list(command)
        self.output = output


class TrustPermissionError(TrustError):
    """Granting or revoking the trust-settings authorization failed."""


class TrustCommandError(TrustError):
    """Copying or adding the certificate to the trust store failed."""


def format_command(command: Sequence[str]) -> str:
    """Render an argument vector for log and error messages, masking passwords."""
    return " ".join(
        "pass:***" if str(arg).startswith("pass:") else str(arg) for arg in command
    )
