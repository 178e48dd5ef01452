"""
Build strategy base — the interface for family-specific builds.

Pipeline model
──────────────
Every strategy exposes an ordered list of **numbered steps**. Each step:
  - Receives the shared ``BuildContext`` (settings, kernel, workspace).
  - Yields log lines as it runs (forwarded to the progress stream).
  - Raises a ``ProvisioningError`` (or lets ``CommandFailed``/``OSError``
    escape) when it fails; the pipeline maps those to the step's
    error class and stops.

The pipeline drives it:
  for step in strategy.pipeline_steps():
      for line in strategy.run_step(step.name, ctx):
          reporter.emit(line)

Both strategies finish with the same install sequence, implemented
once here as ``install_artifact``.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Generator

from ecsetup.core.models.kernel import KernelIdentity
from ecsetup.core.models.settings import SetupSettings
from ecsetup.core.services.ec_setup.detection.capability import (
    CapabilityState,
    check_capability,
)
from ecsetup.core.services.ec_setup.detection.package_manager import PackageFamily
from ecsetup.core.services.ec_setup.errors import InstallFailed, ProvisioningError
from ecsetup.core.services.ec_setup.execution.activator import load_command
from ecsetup.core.services.ec_setup.execution.download import Fetcher
from ecsetup.core.services.ec_setup.execution.subprocess_runner import CommandRunner

LogStream = Generator[str, None, None]
"""A generator that yields log line strings, one at a time."""


# ── Data Models ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class StepInfo:
    """Declaration of a strategy step (before execution)."""

    name: str                           # Machine name: "install_toolchain", ...
    label: str                          # Human label: "Install build toolchain"
    error: type[ProvisioningError]      # Class used when the step fails


@dataclass
class BuildContext:
    """Shared state for one strategy run.

    The fixed inputs are set by the pipeline; the remaining fields
    are filled in by steps as they discover things.
    """

    settings: SetupSettings
    kernel: KernelIdentity
    workspace: Path
    runner: CommandRunner
    fetcher: Fetcher

    source_package: Path | None = None
    source_tree: Path | None = None
    artifact: Path | None = None
    installed_path: Path | None = None

    def run(
        self,
        cmd: list[str],
        *,
        cwd: Path | None = None,
        env_overrides: dict[str, str] | None = None,
        needs_sudo: bool = False,
    ) -> LogStream:
        """Announce ``cmd``, then stream its output."""
        yield f"Running: {shlex.join(cmd)}"
        yield from self.runner.stream(
            cmd, cwd=cwd, env_overrides=env_overrides, needs_sudo=needs_sudo,
        )


# ── Abstract Strategy ───────────────────────────────────────────────


class BuildStrategy(ABC):
    """Abstract base for family-specific module builds.

    Strategies must implement:
      - family            — which package family they serve
      - workspace_prefix  — temp dir name prefix
      - pipeline_steps()  — ordered step declarations
      - one ``_step_<name>`` generator per declared step
    """

    family: PackageFamily
    workspace_prefix: str = "ec_sys_build"

    @abstractmethod
    def pipeline_steps(self) -> list[StepInfo]:
        """Declare the ordered steps this strategy runs."""

    def run_step(self, step: str, ctx: BuildContext) -> LogStream:
        """Execute a single step by name, yielding log lines."""
        handler = getattr(self, f"_step_{step}", None)
        if handler is None:
            raise ValueError(f"{type(self).__name__} has no step '{step}'")
        yield from handler(ctx)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} family={self.family.value!r}>"


# ── Shared install sequence ─────────────────────────────────────────


def install_artifact(ctx: BuildContext) -> LogStream:
    """Copy the module into extra/, refresh the index, load and verify.

    The index refresh targets the release captured at pipeline start,
    not whatever ``uname -r`` says now.
    """
    settings = ctx.settings
    release = ctx.kernel.release

    if ctx.artifact is None or not ctx.artifact.is_file():
        raise InstallFailed("No built module to install")

    dest_dir = settings.extra_modules_dir(release)
    dest = settings.installed_artifact(release)

    yield from ctx.run(["mkdir", "-p", str(dest_dir)], needs_sudo=True)
    yield from ctx.run(["cp", str(ctx.artifact), str(dest)], needs_sudo=True)
    yield from ctx.run(["depmod", "-a", release], needs_sudo=True)
    yield from ctx.run(load_command(settings), needs_sudo=True)

    if check_capability(settings) is not CapabilityState.READY:
        raise InstallFailed(
            f"{settings.artifact_name} installed at {dest} but "
            f"{settings.module_name} is not active with {settings.write_param} enabled"
        )

    ctx.installed_path = dest
    yield f"Installed {dest}"
