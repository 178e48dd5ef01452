"""
Domain models for ec-sys-setup.

    from ecsetup.core.models import KernelIdentity, SetupSettings, PipelineResult
"""

from ecsetup.core.models.kernel import KernelIdentity, detect_kernel_identity
from ecsetup.core.models.result import PipelineResult, PipelineState
from ecsetup.core.models.settings import SetupSettings

__all__ = [
    "KernelIdentity",
    "PipelineResult",
    "PipelineState",
    "SetupSettings",
    "detect_kernel_identity",
]
