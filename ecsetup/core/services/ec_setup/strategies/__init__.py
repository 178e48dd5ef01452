"""
Build strategies — one per supported package family.

    strategy = get_strategy(PackageFamily.RPM)
"""

from __future__ import annotations

from ecsetup.core.services.ec_setup.detection.package_manager import PackageFamily
from ecsetup.core.services.ec_setup.strategies.base import (  # noqa: F401
    BuildContext,
    BuildStrategy,
    LogStream,
    StepInfo,
    install_artifact,
)
from ecsetup.core.services.ec_setup.strategies.deb_module import DebModuleStrategy
from ecsetup.core.services.ec_setup.strategies.rpm_rebuild import RpmRebuildStrategy

_STRATEGIES: dict[PackageFamily, type[BuildStrategy]] = {
    PackageFamily.RPM: RpmRebuildStrategy,
    PackageFamily.DEB: DebModuleStrategy,
}


def get_strategy(family: PackageFamily) -> BuildStrategy | None:
    """Return a strategy instance for ``family``, or None if unsupported."""
    cls = _STRATEGIES.get(family)
    return cls() if cls else None


__all__ = [
    "BuildContext",
    "BuildStrategy",
    "DebModuleStrategy",
    "LogStream",
    "RpmRebuildStrategy",
    "StepInfo",
    "get_strategy",
    "install_artifact",
]
