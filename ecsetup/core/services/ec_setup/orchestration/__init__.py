"""
L5 Orchestration — the provisioning pipeline and its entry points.
"""

from ecsetup.core.services.ec_setup.orchestration.pipeline import (  # noqa: F401
    ProvisioningPipeline,
    ensure_capability,
    start_provisioning,
)
