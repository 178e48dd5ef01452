"""
L4 Execution — cheap module activation before any build.

Tries ``modprobe`` with write support enabled. Both the unload and
the load are best-effort: their exit codes are ignored and the real
postcondition is re-probed afterwards, so the activator never
reports READY without seeing it.
"""

from __future__ import annotations

import logging
from typing import Callable

from ecsetup.core.models.settings import SetupSettings
from ecsetup.core.services.ec_setup.detection.capability import (
    CapabilityState,
    check_capability,
    is_module_loaded,
)
from ecsetup.core.services.ec_setup.execution.subprocess_runner import CommandRunner

logger = logging.getLogger(__name__)


def load_command(settings: SetupSettings) -> list[str]:
    """``modprobe ec_sys write_support=1``"""
    return ["modprobe", settings.module_name, f"{settings.write_param}=1"]


def unload_command(settings: SetupSettings) -> list[str]:
    return ["modprobe", "-r", settings.module_name]


def activate(
    settings: SetupSettings,
    runner: CommandRunner,
    emit: Callable[[str], None] | None = None,
) -> CapabilityState:
    """Load (or reload) the module with write support, then re-verify.

    - Already active with write support → nothing runs.
    - Loaded without write support → unload, then load with the parameter.
    - Not loaded → a single load with the parameter.

    Args:
        settings: Provisioning settings.
        runner: Command runner used for the privileged modprobe calls.
        emit: Optional progress callback.

    Returns:
        The probe's verdict after the attempt.
    """
    def _say(line: str) -> None:
        logger.info("%s", line)
        if emit is not None:
            emit(line)

    module = settings.module_name

    if check_capability(settings) is CapabilityState.READY:
        _say(f"{module} is already active with write support")
        return CapabilityState.READY

    if is_module_loaded(settings):
        _say(f"{module} is loaded without write support, reloading...")
        if not runner.run_quiet(unload_command(settings), needs_sudo=True):
            logger.info("Unloading %s failed; trying the reload anyway", module)
        runner.run_quiet(load_command(settings), needs_sudo=True)
    else:
        _say(f"Loading {module} with {settings.write_param}=1...")
        runner.run_quiet(load_command(settings), needs_sudo=True)

    state = check_capability(settings)
    if state is CapabilityState.READY:
        _say(f"{module} is active with write support")
    else:
        _say(f"{module} could not be activated with write support")
    return state
