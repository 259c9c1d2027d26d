"""Result models for issuance and trust operations."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

FULLCHAIN_FILENAME = "fullchain.crt"


@dataclass(frozen=True)
class ArtifactSet:
    """Fixed set of files produced for one application.

    All paths live under <output_dir>/<app_name>/.
    """

    app_dir: Path
    key_path: Path
    cnf_path: Path
    csr_path: Path
    cert_path: Path
    fullchain_path: Path
    pfx_path: Path

    @classmethod
    def for_app(cls, output_dir: Path, app_name: str) -> "ArtifactSet":
        app_dir = Path(output_dir) / app_name
        return cls(
            app_dir=app_dir,
            key_path=app_dir / f"{app_name}.key",
            cnf_path=app_dir / f"{app_name}.cnf",
            csr_path=app_dir / f"{app_name}.csr",
            cert_path=app_dir / f"{app_name}.crt",
            fullchain_path=app_dir / FULLCHAIN_FILENAME,
            pfx_path=app_dir / f"{app_name}.pfx",
        )


class StepStatus(str, Enum):
    CREATED = "created"
    SKIPPED = "skipped"
    DISABLED = "disabled"


@dataclass
class IssuanceResult:
    """Artifacts of one pipeline run and what each step did."""

    artifacts: ArtifactSet
    steps: dict[str, StepStatus] = field(default_factory=dict)

    @property
    def created_steps(self) -> list[str]:
        return [name for name, status in self.steps.items() if status is StepStatus.CREATED]


class OsFamily(str, Enum):
    """Operating system families the trust anchor knows how to handle."""

    LINUX = "linux"
    MACOS = "macos"
    UNSUPPORTED = "unsupported"


class TrustOutcome(str, Enum):
    TRUSTED = "trusted"
    ALREADY_TRUSTED = "already_trusted"
    UNSUPPORTED = "unsupported"


@dataclass
class TrustResult:
    """Outcome of registering one certificate with the OS trust store."""

    outcome: TrustOutcome
    os_family: OsFamily
    anchor_path: Path | None = None
