"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ system state but never WRITE.
"""

from ecsetup.core.services.ec_setup.detection.capability import (  # noqa: F401
    CapabilityState,
    CapabilityStatus,
    check_capability,
    has_write_support,
    is_module_loaded,
    probe_capability,
)
from ecsetup.core.services.ec_setup.detection.package_manager import (  # noqa: F401
    PackageFamily,
    detect_package_family,
)
