"""
Test fixtures — a simulated host for provisioning tests.

``SimulatedHost`` lays out the status surfaces and kernel directories
the pipeline reads under a temp dir and returns ``SetupSettings``
pointing at them. ``ScriptedRunner`` stands in for ``CommandRunner``:
it records every command and applies the side effect the real tool
would have on that fake filesystem.

    modprobe ec_sys write_support=1 → loads the module (if available)
    modprobe -r ec_sys              → unloads it
    dnf download --source ...       → drops a kernel-*.src.rpm in cwd
    rpmbuild -bp ...                → unpacks BUILD/kernel-*/linux-*/Makefile
    make M=drivers/acpi modules     → produces drivers/acpi/ec_sys.ko
    make (out-of-tree)              → produces ec_sys.ko in cwd
    mkdir -p / cp                   → real file operations
"""

from __future__ import annotations

import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

from ecsetup.core.models.kernel import KernelIdentity
from ecsetup.core.models.settings import SetupSettings
from ecsetup.core.services.ec_setup.errors import (
    CommandFailed,
    SourceAcquisitionFailed,
)

RPM_KERNEL = KernelIdentity(release="6.8.0-200.fc39.x86_64", arch="x86_64")
DEB_KERNEL = KernelIdentity(release="6.8.0-31-generic", arch="x86_64")

KERNEL_MAKEFILE = (
    "# SPDX-License-Identifier: GPL-2.0\n"
    "VERSION = 6\n"
    "PATCHLEVEL = 8\n"
    "SUBLEVEL = 0\n"
    "EXTRAVERSION =\n"
    "NAME = Hurr durr I'ma ninja sloth\n"
    "\n"
    "# EXTRAVERSION = not-this-one\n"
)

DRIVER_SOURCE = "// SPDX-License-Identifier: GPL-2.0-only\n/* ec_sys.c */\n"


class SimulatedHost:
    """Fake host filesystem rooted at ``root``."""

    def __init__(self, root: Path, *, module_name: str = "ec_sys") -> None:
        self.root = root
        self.module_name = module_name
        self.proc_modules = root / "proc" / "modules"
        self.sys_module_root = root / "sys" / "module"
        self.ec_io_path = root / "sys" / "kernel" / "debug" / "ec" / "ec0" / "io"
        self.modules_root = root / "lib" / "modules"
        self.boot_dir = root / "boot"
        self.kernel_src_root = root / "usr" / "src" / "kernels"
        self.workspace_root = root / "tmp"

        self.proc_modules.parent.mkdir(parents=True)
        self.proc_modules.write_text("snd_hda_intel 57344 3 - Live 0x0000000000000000\n")
        self.sys_module_root.mkdir(parents=True)
        self.boot_dir.mkdir(parents=True)

        # Whether "modprobe ec_sys" can find a module to load
        self.module_available = False

    # ── Settings ────────────────────────────────────────────────

    def settings(self, **overrides) -> SetupSettings:
        values = dict(
            module_name=self.module_name,
            proc_modules=self.proc_modules,
            sys_module_root=self.sys_module_root,
            ec_io_path=self.ec_io_path,
            modules_root=self.modules_root,
            boot_dir=self.boot_dir,
            kernel_src_root=self.kernel_src_root,
            workspace_root=self.workspace_root,
            require_root=False,
        )
        values.update(overrides)
        return SetupSettings(**values)

    # ── Module state ────────────────────────────────────────────

    @property
    def param_file(self) -> Path:
        return self.sys_module_root / self.module_name / "parameters" / "write_support"

    def load_module(self, *, write_support: bool = True) -> None:
        lines = [
            line for line in self.proc_modules.read_text().splitlines()
            if line.split()[0] != self.module_name
        ]
        lines.append(f"{self.module_name} 16384 0 - Live 0x0000000000000000")
        self.proc_modules.write_text("\n".join(lines) + "\n")

        self.param_file.parent.mkdir(parents=True, exist_ok=True)
        self.param_file.write_text("Y\n" if write_support else "N\n")
        if write_support:
            self.ec_io_path.parent.mkdir(parents=True, exist_ok=True)
            self.ec_io_path.write_bytes(b"\x00" * 256)

    def unload_module(self) -> None:
        lines = [
            line for line in self.proc_modules.read_text().splitlines()
            if line.split()[0] != self.module_name
        ]
        self.proc_modules.write_text("\n".join(lines) + "\n")
        shutil.rmtree(self.sys_module_root / self.module_name, ignore_errors=True)
        if self.ec_io_path.exists():
            self.ec_io_path.unlink()

    # ── Kernel files ────────────────────────────────────────────

    def install_kernel_config(self, release: str) -> Path:
        path = self.boot_dir / f"config-{release}"
        path.write_text("CONFIG_ACPI=y\n# CONFIG_ACPI_EC_DEBUGFS is not set\n")
        return path

    def install_symvers(self, release: str) -> Path:
        path = self.kernel_src_root / release / "Module.symvers"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("0x00000000\tprintk\tvmlinux\tEXPORT_SYMBOL\t\n")
        return path

    def install_headers(self, release: str) -> Path:
        path = self.modules_root / release / "build"
        path.mkdir(parents=True)
        (path / "Makefile").write_text(KERNEL_MAKEFILE)
        return path

    def workspaces(self) -> list[Path]:
        if not self.workspace_root.exists():
            return []
        return sorted(self.workspace_root.iterdir())


@dataclass
class RecordedCall:
    cmd: list[str]
    cwd: Path | None = None
    env_overrides: dict[str, str] | None = None
    needs_sudo: bool = False
    quiet: bool = False

    @property
    def line(self) -> str:
        return shlex.join(self.cmd)


@dataclass
class ScriptedRunner:
    """Drop-in ``CommandRunner`` that simulates commands on a ``SimulatedHost``."""

    host: SimulatedHost
    calls: list[RecordedCall] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)
    produce_artifact: bool = True
    hooks: list[Callable[[RecordedCall], None]] = field(default_factory=list)

    def fail(self, prefix: str) -> None:
        """Make every command whose line starts with ``prefix`` fail."""
        self.fail_on.add(prefix)

    def commands(self) -> list[str]:
        return [c.line for c in self.calls]

    def _should_fail(self, call: RecordedCall) -> bool:
        return any(call.line.startswith(prefix) for prefix in self.fail_on)

    # ── CommandRunner interface ─────────────────────────────────

    def stream(
        self,
        cmd: list[str],
        *,
        cwd=None,
        env_overrides: dict[str, str] | None = None,
        needs_sudo: bool = False,
    ) -> Iterator[str]:
        call = RecordedCall(
            list(cmd),
            Path(cwd) if cwd is not None else None,
            env_overrides,
            needs_sudo,
        )
        self.calls.append(call)
        for hook in self.hooks:
            hook(call)
        if self._should_fail(call):
            yield f"{cmd[0]}: simulated failure"
            raise CommandFailed(cmd, 1, output_tail=[f"{cmd[0]}: simulated failure"])
        if not self._apply(call):
            raise CommandFailed(cmd, 1)
        yield f"{cmd[0]}: ok"

    def run_quiet(self, cmd: list[str], *, needs_sudo: bool = False) -> bool:
        call = RecordedCall(list(cmd), needs_sudo=needs_sudo, quiet=True)
        self.calls.append(call)
        if self._should_fail(call):
            return False
        return self._apply(call)

    # ── Side effects ────────────────────────────────────────────

    def _apply(self, call: RecordedCall) -> bool:
        cmd = call.cmd
        name = cmd[0]

        if name == "modprobe":
            if "-r" in cmd:
                self.host.unload_module()
                return True
            if not self.host.module_available:
                return False
            self.host.load_module(write_support=any(a.endswith("=1") for a in cmd))
            return True

        if name == "dnf" and cmd[1:3] == ["download", "--source"]:
            assert call.cwd is not None
            (call.cwd / f"{cmd[3]}-200.fc39.src.rpm").write_bytes(b"srpm")
            return True

        if name == "rpmbuild":
            assert call.cwd is not None
            build = call.cwd.parent / "BUILD" / "kernel-6.8.0" / "linux-6.8.0-200.fc39.x86_64"
            build.mkdir(parents=True)
            (build / "Makefile").write_text(KERNEL_MAKEFILE)
            (build / "drivers" / "acpi").mkdir(parents=True)
            return True

        if name == "make" and call.cwd is not None and self.produce_artifact:
            subdirs = [a[2:] for a in cmd if a.startswith("M=")]
            if "modules" in cmd and subdirs:
                (call.cwd / subdirs[0] / "ec_sys.ko").write_bytes(b"\x7fELF")
            elif len(cmd) == 1:
                (call.cwd / "ec_sys.ko").write_bytes(b"\x7fELF")
            return True

        if name == "mkdir":
            Path(cmd[-1]).mkdir(parents=True, exist_ok=True)
            return True

        if name == "cp":
            shutil.copyfile(cmd[1], cmd[2])
            self.host.module_available = True
            return True

        return True


@dataclass
class FakeFetcher:
    """Records downloads and writes a stub driver source."""

    calls: list[tuple[str, Path]] = field(default_factory=list)
    error: str | None = None

    def __call__(self, url: str, dest: Path) -> Iterator[str]:
        self.calls.append((url, dest))
        yield f"Fetching {url}"
        if self.error:
            raise SourceAcquisitionFailed(self.error)
        dest.write_text(DRIVER_SOURCE)
        yield f"Saved to {dest}"
