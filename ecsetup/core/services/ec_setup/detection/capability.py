"""
L3 Detection — ec_sys capability status.

Read-only probes of the loaded-module list and the module's
write-support parameter. Never needs root, never raises for a
missing or unreadable status file: absence simply means NOT_READY.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ecsetup.core.models.settings import SetupSettings

logger = logging.getLogger(__name__)

_TRUTHY_PARAM_VALUES = frozenset({"Y", "1"})


class CapabilityState(str, Enum):
    READY = "ready"
    NOT_READY = "not_ready"


@dataclass(frozen=True)
class CapabilityStatus:
    """Detailed view of the module's state on this host."""

    module: str
    loaded: bool
    write_support: bool
    device_present: bool

    @property
    def state(self) -> CapabilityState:
        if self.loaded and self.write_support:
            return CapabilityState.READY
        return CapabilityState.NOT_READY

    def to_dict(self) -> dict:
        return {
            "module": self.module,
            "loaded": self.loaded,
            "write_support": self.write_support,
            "device_present": self.device_present,
            "state": self.state.value,
        }


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return None


def _path_exists(path: Path) -> bool:
    # debugfs is root-only: a denied stat reads as absent
    return os.path.exists(path)


def is_module_loaded(settings: SetupSettings) -> bool:
    """True if the module's name is listed in the loaded-module list.

    Matches the first field of each ``/proc/modules`` line exactly, so
    ``ec_sys_helper`` does not count as ``ec_sys``.
    """
    content = _read_text(settings.proc_modules)
    if content is None:
        return False
    for line in content.splitlines():
        fields = line.split()
        if fields and fields[0] == settings.module_name:
            return True
    return False


def has_write_support(settings: SetupSettings) -> bool:
    """True if the write-support parameter reads ``Y`` or ``1``."""
    content = _read_text(settings.write_param_path)
    if content is None:
        return False
    return content.strip() in _TRUTHY_PARAM_VALUES


def probe_capability(settings: SetupSettings) -> CapabilityStatus:
    """Collect loaded / write-support / device status."""
    return CapabilityStatus(
        module=settings.module_name,
        loaded=is_module_loaded(settings),
        write_support=has_write_support(settings),
        device_present=_path_exists(settings.ec_io_path),
    )


def check_capability(settings: SetupSettings) -> CapabilityState:
    """READY iff the module is loaded AND write support is enabled."""
    if not is_module_loaded(settings):
        return CapabilityState.NOT_READY
    if not has_write_support(settings):
        return CapabilityState.NOT_READY
    return CapabilityState.READY
