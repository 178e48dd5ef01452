"""
Provisioning error taxonomy.

Every step failure is raised as one of the ``ProvisioningError``
subclasses below. The pipeline stamps the failing step onto the
error (``error.step``) before returning it as a failed result, so
``str(error)`` always names where the run stopped.

``CommandFailed`` is lower level: the command runner raises it and
the pipeline wraps it into the step's own error class.
"""

from __future__ import annotations

import shlex


class ProvisioningError(Exception):
    """Base class for all provisioning failures."""

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.step = step

    def at_step(self, index: int, total: int, label: str) -> ProvisioningError:
        """Attach step identity (``"5/14 Install build dependencies"``)."""
        self.step = f"{index}/{total} {label}"
        return self

    def __str__(self) -> str:
        if self.step:
            return f"Step {self.step} failed: {self.message}"
        return self.message


class EnvironmentUnready(ProvisioningError):
    """Host prerequisites are missing (privileges, kernel headers)."""


class UnsupportedPlatform(ProvisioningError):
    """Neither supported package family was found."""


class DependencyInstallFailed(ProvisioningError):
    """Toolchain or build-dependency installation failed."""


class SourceAcquisitionFailed(ProvisioningError):
    """Kernel or driver source could not be downloaded or located."""


class SourcePreparationFailed(ProvisioningError):
    """Source extraction, tree discovery or version patching failed."""


class BuildFailed(ProvisioningError):
    """Compilation failed."""


class ArtifactMissing(ProvisioningError):
    """The build finished but the module file is not where expected."""


class InstallFailed(ProvisioningError):
    """Copy, index refresh or activation of the built module failed."""


class CommandFailed(RuntimeError):
    """An external command exited non-zero, timed out, or could not start."""

    def __init__(
        self,
        cmd: list[str],
        returncode: int | None,
        *,
        output_tail: list[str] | None = None,
        reason: str = "",
    ) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output_tail = list(output_tail or [])
        self.reason = reason or f"exit code {returncode}"
        super().__init__(f"{shlex.join(self.cmd)} failed ({self.reason})")
