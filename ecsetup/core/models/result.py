"""
Provisioning outcome — the pipeline's state machine and terminal value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class PipelineState(str, Enum):
    """States of one provisioning run."""

    IDLE = "idle"
    PROBING = "probing"
    READY = "ready"
    NOT_READY = "not_ready"
    ACTIVATING = "activating"
    BUILD_REQUIRED = "build_required"
    DETECTING_FAMILY = "detecting_family"
    BUILDING = "building"
    INSTALLED = "installed"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({
    PipelineState.READY,
    PipelineState.INSTALLED,
    PipelineState.FAILED,
    PipelineState.UNSUPPORTED,
})


@dataclass(frozen=True)
class PipelineResult:
    """Terminal value of a provisioning run.

    Exactly one of two shapes:
      - success: ``ok=True``, ``installed_path`` set when a module was built
      - failure: ``ok=False``, ``error`` names the failed step
    """

    ok: bool
    state: PipelineState
    installed_path: Path | None = None
    family: str = ""
    error: str = ""
    error_type: str = ""
    step: str | None = None

    @classmethod
    def success(
        cls,
        state: PipelineState,
        *,
        installed_path: Path | None = None,
        family: str = "",
    ) -> PipelineResult:
        return cls(ok=True, state=state, installed_path=installed_path, family=family)

    @classmethod
    def failure(
        cls,
        state: PipelineState,
        error: BaseException | str,
        *,
        family: str = "",
    ) -> PipelineResult:
        if isinstance(error, BaseException):
            return cls(
                ok=False,
                state=state,
                family=family,
                error=str(error),
                error_type=type(error).__name__,
                step=getattr(error, "step", None),
            )
        return cls(ok=False, state=state, family=family, error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "state": self.state.value,
            "installed_path": str(self.installed_path) if self.installed_path else None,
            "family": self.family,
            "error": self.error,
            "error_type": self.error_type,
            "step": self.step,
        }
