"""
Tests for L3 detection — package family.
"""

from __future__ import annotations

import pytest

from ecsetup.core.services.ec_setup.detection import package_manager
from ecsetup.core.services.ec_setup.detection.package_manager import (
    PackageFamily,
    detect_package_family,
)


def _which_from(available: set[str]):
    def _which(binary: str) -> str | None:
        return f"/usr/bin/{binary}" if binary in available else None
    return _which


@pytest.mark.parametrize(
    "available, expected",
    [
        ({"dnf"}, PackageFamily.RPM),
        ({"apt-get"}, PackageFamily.DEB),
        ({"dnf", "apt-get"}, PackageFamily.RPM),
        ({"pacman"}, PackageFamily.UNSUPPORTED),
        (set(), PackageFamily.UNSUPPORTED),
    ],
)
def test_detect_package_family(monkeypatch, available, expected):
    monkeypatch.setattr(package_manager.shutil, "which", _which_from(available))
    assert detect_package_family() is expected


def test_labels():
    assert "dnf" in PackageFamily.RPM.label
    assert "apt" in PackageFamily.DEB.label
    assert PackageFamily.UNSUPPORTED.value == "unsupported"
