"""Issuance configuration dataclasses."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_EXPORT_PASSWORD = "changeit"


@dataclass
class ForgeConfig:
    """Process-wide settings, resolved once at startup."""

    openssl: str = "openssl"
    validity_days: int = 365
    extensions_section: str = "v3_ext"
    # Known constant, only acceptable for local development bundles
    export_password: str = DEFAULT_EXPORT_PASSWORD
    running_in_container: bool = False

    @property
    def uses_default_export_password(self) -> bool:
        return self.export_password == DEFAULT_EXPORT_PASSWORD

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ForgeConfig":
        """Build configuration from environment variables.

        Args:
            env: Environment mapping, defaults to os.environ

        Returns:
            ForgeConfig with CONTAINER, CRTFORGE_OPENSSL and
            CRTFORGE_PFX_PASSWORD applied over the defaults
        """
        if env is None:
            env = os.environ
        return cls(
            openssl=env.get("CRTFORGE_OPENSSL") or "openssl",
            export_password=env.get("CRTFORGE_PFX_PASSWORD") or DEFAULT_EXPORT_PASSWORD,
            running_in_container=env.get("CONTAINER") == "true",
        )


@dataclass(frozen=True)
class IssuanceRequest:
    """Application identity plus the CA context used to sign it."""

    output_dir: Path
    app_name: str
    intermediate_ca_cnf: Path
    intermediate_ca_crt: Path
    intermediate_ca_key: Path
    root_ca_crt: Path
    common_name: str
    alt_names: tuple[str, ...] = field(default_factory=tuple)
    export_bundle: bool = False

    def __post_init__(self) -> None:
        if not is_path_segment(self.app_name):
            raise ValueError(
                f"app name must be a single path segment: {self.app_name!r}"
            )
        # Accept any sequence for alt_names but keep the request immutable
        object.__setattr__(self, "alt_names", tuple(self.alt_names))

    @property
    def app_dir(self) -> Path:
        return Path(self.output_dir) / self.app_name


def is_path_segment(name: str) -> bool:
    """Return True if name can be used as one directory or file name."""
    if not name or name in (".", ".."):
        return False
    if "\x00" in name:
        return False
    return all(sep not in name for sep in ("/", os.sep, os.altsep) if sep)
