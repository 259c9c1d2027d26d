"""Idempotent issuance of application certificates signed by an intermediate CA."""

import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from .cert_utils import create_fullchain_bundle, describe_certificate
from .cnf_template import render_app_cnf
from .command_runner import CommandRunner, SubprocessRunner
from .config import ForgeConfig, IssuanceRequest
from .exceptions import ArtifactIOError, ToolError
from .logging_config import LOGGER
from .models import ArtifactSet, IssuanceResult, StepStatus

APP_DIR_MODE = 0o700


class IssuancePipeline:
    """Produces the ArtifactSet of an application one step at a time.

    Every step is skipped when its output file already exists, so a failed
    run is resumed by invoking issue() again with the same request.
    """

    def __init__(
        self, config: ForgeConfig | None = None, runner: CommandRunner | None = None
    ) -> None:
        """Initialize pipeline.

        Args:
            config: Tool and password settings, defaults to ForgeConfig()
            runner: Executes openssl, defaults to SubprocessRunner
        """
        self.config = config or ForgeConfig()
        self.runner = runner or SubprocessRunner()

    def issue(self, request: IssuanceRequest) -> IssuanceResult:
        """Run all steps for the request.

        Args:
            request: Application identity and CA signing context

        Returns:
            IssuanceResult with artifact paths and the status of each step

        Raises:
            ArtifactIOError: If a filesystem operation fails
            ToolError: If openssl exits with a non-zero status
        """
        artifacts = ArtifactSet.for_app(request.output_dir, request.app_name)
        result = IssuanceResult(artifacts=artifacts)

        result.steps["app_dir"] = self.ensure_app_dir(artifacts)
        result.steps["key"] = self.generate_key(artifacts)
        result.steps["cnf"] = self.render_cnf(request, artifacts)
        result.steps["csr"] = self.generate_csr(artifacts)
        result.steps["crt"] = self.sign_certificate(request, artifacts)
        result.steps["fullchain"] = self.assemble_fullchain(request, artifacts)
        result.steps["pfx"] = self.export_bundle(request, artifacts)

        return result

    def ensure_app_dir(self, artifacts: ArtifactSet) -> StepStatus:
        app_dir = artifacts.app_dir
        if app_dir.is_dir():
            LOGGER.info("App dir already exists, skipping: %s", app_dir)
            return StepStatus.SKIPPED
        try:
            app_dir.mkdir(mode=APP_DIR_MODE, parents=True)
        except FileExistsError as e:
            if app_dir.is_dir():
                LOGGER.info("App dir already exists, skipping: %s", app_dir)
                return StepStatus.SKIPPED
            raise ArtifactIOError("app_dir", app_dir, e) from e
        except OSError as e:
            raise ArtifactIOError("app_dir", app_dir, e) from e
        LOGGER.info("App dir created: %s", app_dir)
        return StepStatus.CREATED

    def generate_key(self, artifacts: ArtifactSet) -> StepStatus:
        return self._run_tool_step(
            "key",
            artifacts.key_path,
            [
                self.config.openssl, "genpkey",
                "-algorithm", "RSA",
                "-out", str(artifacts.key_path),
            ],
        )

    def render_cnf(self, request: IssuanceRequest, artifacts: ArtifactSet) -> StepStatus:
        if artifacts.cnf_path.exists():
            LOGGER.info("App cnf already exists, skipping: %s", artifacts.cnf_path)
            return StepStatus.SKIPPED
        content = render_app_cnf(request.app_name, request.common_name, request.alt_names)
        _write_atomic("cnf", artifacts.cnf_path, content)
        LOGGER.info("App cnf created: %s", artifacts.cnf_path)
        return StepStatus.CREATED

    def generate_csr(self, artifacts: ArtifactSet) -> StepStatus:
        return self._run_tool_step(
            "csr",
            artifacts.csr_path,
            [
                self.config.openssl, "req", "-new",
                "-key", str(artifacts.key_path),
                "-config", str(artifacts.cnf_path),
                "-out", str(artifacts.csr_path),
            ],
        )

    def sign_certificate(
        self, request: IssuanceRequest, artifacts: ArtifactSet
    ) -> StepStatus:
        return self._run_tool_step(
            "crt",
            artifacts.cert_path,
            [
                self.config.openssl, "x509", "-req",
                "-in", str(artifacts.csr_path),
                "-CA", str(request.intermediate_ca_crt),
                "-CAkey", str(request.intermediate_ca_key),
                "-CAcreateserial",
                "-days", str(self.config.validity_days),
                "-extensions", self.config.extensions_section,
                "-extfile", str(artifacts.cnf_path),
                "-out", str(artifacts.cert_path),
            ],
        )

    def assemble_fullchain(
        self, request: IssuanceRequest, artifacts: ArtifactSet
    ) -> StepStatus:
        """Write leaf + intermediate + root to fullchain.crt.

        All three sources are read before the destination is touched.
        """
        if artifacts.fullchain_path.exists():
            LOGGER.info("App fullchain already exists, skipping: %s", artifacts.fullchain_path)
            return StepStatus.SKIPPED

        sources = (artifacts.cert_path, request.intermediate_ca_crt, request.root_ca_crt)
        contents = []
        for source in sources:
            try:
                contents.append(Path(source).read_bytes())
            except OSError as e:
                raise ArtifactIOError("fullchain", source, e) from e

        _write_atomic("fullchain", artifacts.fullchain_path, create_fullchain_bundle(*contents))
        LOGGER.info("App fullchain created: %s", artifacts.fullchain_path)
        return StepStatus.CREATED

    def export_bundle(self, request: IssuanceRequest, artifacts: ArtifactSet) -> StepStatus:
        if artifacts.pfx_path.exists():
            LOGGER.info("App pfx already exists, skipping: %s", artifacts.pfx_path)
            return StepStatus.SKIPPED
        if not request.export_bundle:
            return StepStatus.DISABLED

        if self.config.uses_default_export_password:
            LOGGER.warning(
                "Exporting %s with the well-known default password; "
                "use it for local development only",
                artifacts.pfx_path.name,
            )
        # Relative names: openssl runs inside the app dir
        return self._run_tool_step(
            "pfx",
            artifacts.pfx_path,
            [
                self.config.openssl, "pkcs12",
                "-in", artifacts.fullchain_path.name,
                "-inkey", artifacts.key_path.name,
                "-password", f"pass:{self.config.export_password}",
                "-export",
                "-out", artifacts.pfx_path.name,
            ],
            cwd=artifacts.app_dir,
        )

    def _run_tool_step(
        self,
        step: str,
        output_path: Path,
        args: Sequence[str],
        cwd: Path | None = None,
    ) -> StepStatus:
        """Invoke openssl unless output_path exists; remove partial output on failure."""
        if output_path.exists():
            LOGGER.info("App %s already exists, skipping: %s", step, output_path)
            return StepStatus.SKIPPED

        result = self.runner.run(args, cwd=cwd)
        if not result.ok:
            try:
                output_path.unlink(missing_ok=True)
            except OSError as e:
                LOGGER.error("Could not remove partial %s output %s: %s", step, output_path, e)
            raise ToolError(step, args, result.exit_status, result.output)

        LOGGER.info("App %s created: %s", step, output_path)
        return StepStatus.CREATED


def _write_atomic(step: str, path: Path, content: bytes) -> None:
    """Write content to a temp file beside path, then rename it into place."""
    fd = None
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        with os.fdopen(fd, "wb") as tmp:
            fd = None
            tmp.write(content)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise ArtifactIOError(step, path, e) from e
    finally:
        if fd is not None:
            os.close(fd)
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)


def report_summary(
    result: IssuanceResult, request: IssuanceRequest, config: ForgeConfig
) -> None:
    """Log what was issued and where to find it."""
    artifacts = result.artifacts
    LOGGER.info("App certs created successfully.")
    LOGGER.info("  App name: %s", request.app_name)
    LOGGER.info("  Domains: %s", ", ".join(request.alt_names))
    try:
        details = describe_certificate(artifacts.cert_path.read_bytes())
    except (OSError, ValueError) as e:
        LOGGER.warning("Could not read certificate details from %s: %s", artifacts.cert_path, e)
    else:
        LOGGER.info("  Serial: %s", details["serialNumber"])
        LOGGER.info("  Expires: %s", details["expiry"])
    LOGGER.info("To see your cert files, please check the dir: %s", artifacts.app_dir)

    if config.running_in_container:
        LOGGER.warning("You are running crtforge from a container.")
        LOGGER.info("The paths you see in the logs are container paths.")
        LOGGER.info("Replace /root with your own home directory.")
        LOGGER.info("For example /root/.config/crtforge -> /home/user/.config/crtforge")
