"""
L5 Orchestration — the provisioning pipeline.

One implementation, two entry points:

- ``ensure_capability()``  — one-shot, synchronous. Progress lines go
  straight to a writer; returns the PipelineResult.
- ``start_provisioning()`` — embedded. Runs the same pipeline on a
  worker thread and returns a streaming ProgressReporter the caller
  consumes while doing its own work (e.g. animating a spinner).

State machine
─────────────
    IDLE → PROBING → READY
                   → NOT_READY → ACTIVATING → READY
                                            → BUILD_REQUIRED → FAILED (not root)
                                              → DETECTING_FAMILY → UNSUPPORTED
                                                → BUILDING → INSTALLED | FAILED

Every run ends in exactly one terminal state and closes its reporter
exactly once. Nothing is retried.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

from ecsetup.core.models.kernel import KernelIdentity, detect_kernel_identity
from ecsetup.core.models.result import PipelineResult, PipelineState
from ecsetup.core.models.settings import SetupSettings
from ecsetup.core.services.ec_setup.detection.capability import (
    CapabilityState,
    check_capability,
)
from ecsetup.core.services.ec_setup.detection.package_manager import (
    PackageFamily,
    detect_package_family,
)
from ecsetup.core.services.ec_setup.errors import (
    CommandFailed,
    EnvironmentUnready,
    ProvisioningError,
    UnsupportedPlatform,
)
from ecsetup.core.services.ec_setup.execution.activator import activate
from ecsetup.core.services.ec_setup.execution.download import Fetcher, make_fetcher
from ecsetup.core.services.ec_setup.execution.subprocess_runner import CommandRunner
from ecsetup.core.services.ec_setup.execution.workspace import build_workspace
from ecsetup.core.services.ec_setup.progress import ProgressReporter
from ecsetup.core.services.ec_setup.strategies import (
    BuildContext,
    BuildStrategy,
    get_strategy,
)

logger = logging.getLogger(__name__)


class ProvisioningPipeline:
    """Drive the ec_sys module from "unknown" to "active with write support".

    Args:
        settings: Frozen provisioning settings.
        runner: Command runner (default: real subprocesses).
        fetcher: Source downloader (default: urllib with the configured
            download timeout).
        kernel: Kernel identity override. When None it is queried from
            the host once, at the start of ``run()``.
        family_detector: Package family detector override.
    """

    def __init__(
        self,
        settings: SetupSettings,
        *,
        runner: CommandRunner | None = None,
        fetcher: Fetcher | None = None,
        kernel: KernelIdentity | None = None,
        family_detector: Callable[[], PackageFamily] | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner or CommandRunner(timeout=settings.command_timeout)
        self.fetcher = fetcher or make_fetcher(settings.download_timeout)
        self._kernel_override = kernel
        self._detect_family = family_detector or detect_package_family

        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = [PipelineState.IDLE]
        self.kernel: KernelIdentity | None = None
        self.family: PackageFamily | None = None

    # ── State ───────────────────────────────────────────────────────

    def _transition(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s → %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @property
    def _family_name(self) -> str:
        return self.family.value if self.family else ""

    # ── Entry point ─────────────────────────────────────────────────

    def run(self, reporter: ProgressReporter) -> PipelineResult:
        """Run the pipeline to a terminal state and close ``reporter``.

        Raises:
            RuntimeError: If this instance has already been run.
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("ProvisioningPipeline instances are single-use")

        try:
            result = self._execute(reporter.emit)
        except ProvisioningError as exc:
            if not self.state.is_terminal:
                self._transition(PipelineState.FAILED)
            logger.error("Provisioning failed: %s", exc)
            result = PipelineResult.failure(self.state, exc, family=self._family_name)
        except Exception as exc:
            logger.exception("Unexpected error during provisioning")
            if not self.state.is_terminal:
                self._transition(PipelineState.FAILED)
            result = PipelineResult.failure(
                self.state, f"Unexpected error: {exc}", family=self._family_name,
            )

        reporter.close(result)
        return result

    def _execute(self, emit: Callable[[str], None]) -> PipelineResult:
        settings = self.settings
        module = settings.module_name

        # Queried once; every later path and version derives from it
        self.kernel = self._kernel_override or detect_kernel_identity()
        kernel = self.kernel
        logger.info("Provisioning %s for kernel %s (%s)", module, kernel.release, kernel.arch)

        # ── Probe ──
        self._transition(PipelineState.PROBING)
        emit(f"Checking {module} status...")
        if check_capability(settings) is CapabilityState.READY:
            self._transition(PipelineState.READY)
            emit(f"{module} is loaded with write support enabled")
            return PipelineResult.success(PipelineState.READY)

        # ── Activate ──
        self._transition(PipelineState.NOT_READY)
        self._transition(PipelineState.ACTIVATING)
        if activate(settings, self.runner, emit) is CapabilityState.READY:
            self._transition(PipelineState.READY)
            return PipelineResult.success(PipelineState.READY)

        self._transition(PipelineState.BUILD_REQUIRED)
        if settings.require_root and os.geteuid() != 0:
            raise EnvironmentUnready("Building the module requires root privileges (run with sudo)")

        # ── Detect family ──
        self._transition(PipelineState.DETECTING_FAMILY)
        self.family = self._detect_family()
        strategy = get_strategy(self.family)
        if strategy is None:
            self._transition(PipelineState.UNSUPPORTED)
            raise UnsupportedPlatform(
                "Could not find a supported package manager (dnf or apt-get)"
            )
        emit(f"Detected {self.family.label}")

        # ── Build ──
        self._transition(PipelineState.BUILDING)
        emit(f"Starting automated build of {module} for {kernel.release}...")
        installed = self._build(strategy, kernel, emit)

        self._transition(PipelineState.INSTALLED)
        emit(f"Success! {settings.artifact_name} installed at {installed}")
        return PipelineResult.success(
            PipelineState.INSTALLED, installed_path=installed, family=self._family_name,
        )

    def _build(
        self,
        strategy: BuildStrategy,
        kernel: KernelIdentity,
        emit: Callable[[str], None],
    ) -> Path:
        steps = strategy.pipeline_steps()
        total = len(steps)

        with build_workspace(strategy.workspace_prefix, self.settings.workspace_root) as ws:
            emit(f"Working in {ws}")
            ctx = BuildContext(
                settings=self.settings,
                kernel=kernel,
                workspace=ws,
                runner=self.runner,
                fetcher=self.fetcher,
            )

            for index, step in enumerate(steps, start=1):
                emit(f"{index}/{total} {step.label}...")
                try:
                    for line in strategy.run_step(step.name, ctx):
                        emit(line)
                except ProvisioningError as exc:
                    raise exc.at_step(index, total, step.label)
                except (CommandFailed, OSError) as exc:
                    raise step.error(str(exc)).at_step(index, total, step.label) from exc

            if ctx.installed_path is None:
                raise step.error(
                    "Install step finished without an installed module"
                ).at_step(total, total, step.label)
            return ctx.installed_path


# ── Entry points ────────────────────────────────────────────────────


def ensure_capability(
    settings: SetupSettings,
    *,
    writer: Callable[[str], None] | None = None,
    runner: CommandRunner | None = None,
    fetcher: Fetcher | None = None,
    kernel: KernelIdentity | None = None,
) -> PipelineResult:
    """Run the pipeline synchronously, writing progress as it happens."""
    reporter = ProgressReporter.synchronous(writer)
    pipeline = ProvisioningPipeline(settings, runner=runner, fetcher=fetcher, kernel=kernel)
    return pipeline.run(reporter)


def start_provisioning(
    settings: SetupSettings,
    *,
    runner: CommandRunner | None = None,
    fetcher: Fetcher | None = None,
    kernel: KernelIdentity | None = None,
) -> ProgressReporter:
    """Launch the pipeline on a worker thread.

    The caller must consume ``reporter.events()``: the queue is bounded,
    so an unread stream eventually pauses the build.

    Returns:
        A streaming reporter; its ``events()`` ends when the pipeline
        finishes and ``result`` then holds the outcome.
    """
    reporter = ProgressReporter.streaming(settings.progress_queue_size)
    pipeline = ProvisioningPipeline(settings, runner=runner, fetcher=fetcher, kernel=kernel)

    thread = threading.Thread(
        target=pipeline.run,
        args=(reporter,),
        name="ecsetup-provision",
        daemon=True,
    )
    thread.start()
    return reporter
