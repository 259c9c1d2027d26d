"""Test fixtures for crtforge tests."""

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from crtforge.lib.cert_utils import (
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from crtforge.lib.command_runner import CommandResult
from crtforge.lib.config import ForgeConfig, IssuanceRequest


class FakeRunner:
    """CommandRunner that records argument vectors instead of executing them.

    For openssl calls it writes a placeholder file at the -out argument so the
    pipeline sees the artifact as created. Failures are configured per subcommand via fail_on.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], Path | None]] = []
        self.fail_on: dict[str, CommandResult] = {}

    @property
    def commands(self) -> list[list[str]]:
        return [args for args, _ in self.calls]

    def run(self, args: Sequence[str], cwd: Path | None = None) -> CommandResult:
        argv = [str(arg) for arg in args]
        self.calls.append((argv, cwd))
        key = self._key(argv)

        if key in self.fail_on:
            return self.fail_on[key]
        if "-out" in argv:
            out = Path(argv[argv.index("-out") + 1])
            if cwd is not None and not out.is_absolute():
                out = Path(cwd) / out
            out.write_bytes(f"{key} output\n".encode())
        return CommandResult(exit_status=0, output="")

    @staticmethod
    def _key(argv: list[str]) -> str:
        """openssl <sub>, sudo <prog> [<sub>] and security <sub> keyed by name."""
        if argv[0] == "sudo":
            argv = argv[1:]
        if argv[0] == "security" and argv[1] == "authorizationdb":
            return f"authorizationdb {argv[2]}"
        return argv[1] if argv[0] in ("openssl", "security") else argv[0]


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Return a recording CommandRunner."""
    return FakeRunner()


@pytest.fixture
def forge_config() -> ForgeConfig:
    """Return configuration with defaults and no container signal."""
    return ForgeConfig()


@pytest.fixture
def root_key() -> RSAPrivateKey:
    """Generate RSA private key for Root CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def root_cert(root_key: RSAPrivateKey) -> x509.Certificate:
    """Generate self-signed Root CA certificate."""
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Test Root CA")])
    return _build_ca_cert(subject, subject, root_key, root_key, path_length=None)


@pytest.fixture
def intermediate_key() -> RSAPrivateKey:
    """Generate RSA private key for Intermediate CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def intermediate_cert(
    intermediate_key: RSAPrivateKey,
    root_cert: x509.Certificate,
    root_key: RSAPrivateKey,
) -> x509.Certificate:
    """Generate Intermediate CA certificate signed by Root CA."""
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Test Intermediate CA")])
    return _build_ca_cert(
        subject, root_cert.subject, intermediate_key, root_key, path_length=0
    )


@pytest.fixture
def ca_files_on_disk(
    tmp_path: Path,
    root_key: RSAPrivateKey,
    root_cert: x509.Certificate,
    intermediate_key: RSAPrivateKey,
    intermediate_cert: x509.Certificate,
) -> Path:
    """Write CA files to disk and return base directory.

    Creates:
        {tmp}/ca/root-ca/ca.crt, ca.key
        {tmp}/ca/intermediate-ca/ca.crt, ca.key, ca.cnf
    """
    base = tmp_path / "ca"
    root_dir = base / "root-ca"
    intermediate_dir = base / "intermediate-ca"
    root_dir.mkdir(parents=True)
    intermediate_dir.mkdir(parents=True)

    (root_dir / "ca.crt").write_bytes(serialize_certificate(root_cert))
    (root_dir / "ca.key").write_bytes(serialize_private_key(root_key))
    (intermediate_dir / "ca.crt").write_bytes(serialize_certificate(intermediate_cert))
    (intermediate_dir / "ca.key").write_bytes(serialize_private_key(intermediate_key))
    (intermediate_dir / "ca.cnf").write_text("[ ca ]\n")

    return base


@pytest.fixture
def issuance_request(tmp_path: Path, ca_files_on_disk: Path) -> IssuanceRequest:
    """Return request for app 'web' under {tmp}/out."""
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    return IssuanceRequest(
        output_dir=output_dir,
        app_name="web",
        intermediate_ca_cnf=ca_files_on_disk / "intermediate-ca" / "ca.cnf",
        intermediate_ca_crt=ca_files_on_disk / "intermediate-ca" / "ca.crt",
        intermediate_ca_key=ca_files_on_disk / "intermediate-ca" / "ca.key",
        root_ca_crt=ca_files_on_disk / "root-ca" / "ca.crt",
        common_name="web.example.com",
        alt_names=("a.example.com", "b.example.com"),
    )


def _build_ca_cert(
    subject: x509.Name,
    issuer: x509.Name,
    subject_key: RSAPrivateKey,
    issuer_key: RSAPrivateKey,
    path_length: int | None,
) -> x509.Certificate:
    not_before = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(subject_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=path_length), critical=True)
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(subject_key.public_key()),
            critical=False,
        )
        .sign(issuer_key, hashes.SHA256())
    )
