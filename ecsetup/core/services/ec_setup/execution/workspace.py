"""
L4 Execution — ephemeral build workspace.

One temporary directory per provisioning run, owned exclusively by
that run and removed on every exit path. Killing the process
outright skips the cleanup; nothing else does.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def build_workspace(prefix: str, root: Path | None = None) -> Iterator[Path]:
    """Create a temporary build directory and remove it afterwards.

    Args:
        prefix: Directory name prefix (e.g. ``ec_sys_build``).
        root: Parent directory. Defaults to the system temp dir.

    Yields:
        Absolute path to the new, empty directory.
    """
    if root is not None:
        root.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=f"{prefix}_", dir=root))
    logger.debug("Created workspace %s", path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():
            logger.warning("Workspace %s could not be fully removed", path)
        else:
            logger.debug("Removed workspace %s", path)
