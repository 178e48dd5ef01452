"""
L3 Detection — package family.

Only two families can build the module:
  rpm  → ``dnf`` on PATH (checked first)
  deb  → ``apt-get`` on PATH
"""

from __future__ import annotations

import logging
import shutil
from enum import Enum

logger = logging.getLogger(__name__)


class PackageFamily(str, Enum):
    RPM = "rpm"
    DEB = "deb"
    UNSUPPORTED = "unsupported"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    PackageFamily.RPM: "dnf (Fedora/RHEL)",
    PackageFamily.DEB: "apt (Debian/Ubuntu)",
    PackageFamily.UNSUPPORTED: "unsupported",
}

# Ordered: the first resolvable executable wins
_FAMILY_EXECUTABLES: tuple[tuple[PackageFamily, str], ...] = (
    (PackageFamily.RPM, "dnf"),
    (PackageFamily.DEB, "apt-get"),
)


def detect_package_family() -> PackageFamily:
    """Identify the host's package family from PATH alone."""
    for family, binary in _FAMILY_EXECUTABLES:
        path = shutil.which(binary)
        if path:
            logger.debug("Detected %s via %s", family.value, path)
            return family
    logger.debug(
        "No supported package manager on PATH (looked for %s)",
        ", ".join(binary for _, binary in _FAMILY_EXECUTABLES),
    )
    return PackageFamily.UNSUPPORTED
