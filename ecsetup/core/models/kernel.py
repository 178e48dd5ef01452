"""
KernelIdentity — the running kernel a module is built for.

Queried once per provisioning run. Every path, package name and
version string the build needs is derived from this value so the
run stays consistent even if the host boots into a new kernel
halfway through.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class KernelIdentity:
    """Immutable (release, arch) pair.

    ``release`` is the full ``uname -r`` string, e.g.
    ``6.8.0-200.fc39.x86_64``; ``arch`` is ``uname -m``.
    """

    release: str
    arch: str

    @property
    def base_version(self) -> str:
        """Portion of the release before the first ``-`` (``6.8.0``)."""
        return self.release.split("-", 1)[0]

    @property
    def suffix(self) -> str | None:
        """Portion after the first ``-`` (``200.fc39.x86_64``), or None."""
        parts = self.release.split("-", 1)
        if len(parts) < 2 or not parts[1]:
            return None
        return parts[1]

    @property
    def upstream_version(self) -> str:
        """Upstream tag version for this kernel.

        Mainline releases are tagged without a zero patch level
        (``v6.8``, not ``v6.8.0``); stable releases keep it
        (``v6.8.12``).
        """
        parts = self.base_version.split(".")
        if len(parts) == 3 and parts[2] == "0":
            return ".".join(parts[:2])
        return self.base_version

    def to_dict(self) -> dict:
        return {
            "release": self.release,
            "arch": self.arch,
            "base_version": self.base_version,
            "suffix": self.suffix,
        }


def detect_kernel_identity() -> KernelIdentity:
    """Read the running kernel's release and architecture."""
    return KernelIdentity(release=platform.release(), arch=platform.machine())
