"""
ec_sys provisioning service — package re-exports.

Callers import from here::

    from ecsetup.core.services.ec_setup import ensure_capability, check_capability

Each symbol lives in its single-responsibility module inside the
appropriate layer (detection → execution → strategies → orchestration).
"""

# ── Errors ──
from ecsetup.core.services.ec_setup.errors import (  # noqa: F401
    ArtifactMissing,
    BuildFailed,
    CommandFailed,
    DependencyInstallFailed,
    EnvironmentUnready,
    InstallFailed,
    ProvisioningError,
    SourceAcquisitionFailed,
    SourcePreparationFailed,
    UnsupportedPlatform,
)

# ── Progress ──
from ecsetup.core.services.ec_setup.progress import ProgressReporter  # noqa: F401

# ── L3: Detection ──
from ecsetup.core.services.ec_setup.detection import (  # noqa: F401
    CapabilityState,
    CapabilityStatus,
    PackageFamily,
    check_capability,
    detect_package_family,
    probe_capability,
)

# ── L4: Execution ──
from ecsetup.core.services.ec_setup.execution import (  # noqa: F401
    CommandRunner,
    activate,
)

# ── L5: Orchestration ──
from ecsetup.core.services.ec_setup.orchestration import (  # noqa: F401
    ProvisioningPipeline,
    ensure_capability,
    start_provisioning,
)
