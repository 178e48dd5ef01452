"""
L4 Execution — kernel source tree helpers.

File-level operations the build strategies perform on downloaded
source: locating artifacts and trees, pinning the Makefile version
to the running kernel, seeding ``.config``, and writing the
one-file out-of-tree Makefile.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from ecsetup.core.models.kernel import KernelIdentity
from ecsetup.core.services.ec_setup.errors import (
    SourceAcquisitionFailed,
    SourcePreparationFailed,
)

logger = logging.getLogger(__name__)

_EXTRAVERSION_RE = re.compile(r"^EXTRAVERSION\s*=")


def find_source_package(directory: Path, prefix: str = "kernel-") -> Path:
    """Return the first ``<prefix>*.src.rpm`` in ``directory``.

    Raises:
        SourceAcquisitionFailed: If none was downloaded.
    """
    candidates = sorted(directory.glob(f"{prefix}*.src.rpm"))
    if not candidates:
        raise SourceAcquisitionFailed(f"No {prefix}*.src.rpm found in {directory}")
    return candidates[0]


def find_source_tree(
    build_root: Path,
    prefix: str = "linux-",
    marker: str = "Makefile",
) -> Path | None:
    """Depth-first search for a ``prefix*`` directory holding ``marker``.

    Children are visited in name order. A matching directory is
    returned without descending into it.
    """
    if not build_root.is_dir():
        return None
    return _search(build_root, prefix, marker)


def _search(directory: Path, prefix: str, marker: str) -> Path | None:
    try:
        children = sorted(
            p for p in directory.iterdir() if p.is_dir() and not p.is_symlink()
        )
    except OSError as exc:
        logger.debug("Skipping unreadable %s: %s", directory, exc)
        return None

    for child in children:
        if child.name.startswith(prefix) and (child / marker).is_file():
            return child
        found = _search(child, prefix, marker)
        if found is not None:
            return found
    return None


def extraversion_line(kernel: KernelIdentity) -> str:
    """``EXTRAVERSION = -<suffix>`` for the running release.

    Raises:
        SourcePreparationFailed: If the release has no ``-suffix``.
    """
    if kernel.suffix is None:
        raise SourcePreparationFailed(f"Unexpected kernel version format: {kernel.release}")
    return f"EXTRAVERSION = -{kernel.suffix}"


def patch_extraversion(makefile: Path, kernel: KernelIdentity) -> str:
    """Rewrite the first ``EXTRAVERSION =`` line of a kernel Makefile.

    The built module's vermagic must match the running kernel exactly
    or modprobe refuses it.

    Returns:
        The line that was written.

    Raises:
        SourcePreparationFailed: On an unexpected release format, an
            unreadable Makefile, or a Makefile without the field.
    """
    replacement = extraversion_line(kernel)

    try:
        content = makefile.read_text(encoding="utf-8")
    except OSError as exc:
        raise SourcePreparationFailed(f"Cannot read {makefile}: {exc}") from exc

    lines = content.split("\n")
    for i, line in enumerate(lines):
        if _EXTRAVERSION_RE.match(line):
            lines[i] = replacement
            break
    else:
        raise SourcePreparationFailed(f"No EXTRAVERSION line in {makefile}")

    makefile.write_text("\n".join(lines), encoding="utf-8")
    return replacement


def seed_kernel_config(config_src: Path, tree: Path, option: str) -> Path:
    """Copy the installed kernel config into ``tree`` and enable ``option=m``.

    Raises:
        SourcePreparationFailed: If the installed config is missing.
    """
    if not config_src.is_file():
        raise SourcePreparationFailed(f"Kernel config not found: {config_src}")

    dest = tree / ".config"
    shutil.copyfile(config_src, dest)
    with open(dest, "a", encoding="utf-8") as fh:
        fh.write(f"\n{option}=m\n")
    return dest


def write_module_makefile(directory: Path, module: str, headers_dir: Path) -> Path:
    """Write a minimal kbuild Makefile for a single-file module."""
    makefile = directory / "Makefile"
    makefile.write_text(
        f"obj-m := {module}.o\n"
        "\n"
        "all:\n"
        f"\t$(MAKE) -C {headers_dir} M=$(CURDIR) modules\n",
        encoding="utf-8",
    )
    return makefile
