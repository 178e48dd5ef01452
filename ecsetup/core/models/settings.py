"""
SetupSettings — everything provisioning needs to know about the host.

Loaded from ``ecsetup.yml`` (or built-in defaults) by
``ecsetup.core.config.loader`` and passed explicitly to every
service. The model is frozen: callers that need different values
build a new instance with ``model_copy(update=...)``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SOURCE_URL = (
    "https://git.kernel.org/pub/scm/linux/kernel/git/stable/linux.git"
    "/plain/drivers/acpi/ec_sys.c?h=v{version}"
)


class SetupSettings(BaseModel):
    """Provisioning settings for the ``ec_sys`` module.

    Host paths are configurable so the whole pipeline can be pointed
    at a simulated filesystem.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # ── Module identity ─────────────────────────────────────────
    module_name: str = "ec_sys"
    write_param: str = "write_support"
    debug_config_option: str = "CONFIG_ACPI_EC_DEBUGFS"
    driver_subdir: str = "drivers/acpi"

    # ── Host status surfaces ────────────────────────────────────
    proc_modules: Path = Path("/proc/modules")
    sys_module_root: Path = Path("/sys/module")
    ec_io_path: Path = Path("/sys/kernel/debug/ec/ec0/io")

    # ── Kernel locations ────────────────────────────────────────
    modules_root: Path = Path("/lib/modules")
    boot_dir: Path = Path("/boot")
    kernel_src_root: Path = Path("/usr/src/kernels")

    # ── Package families ────────────────────────────────────────
    rpm_build_packages: tuple[str, ...] = (
        "dnf-utils",
        "rpmdevtools",
        "ncurses-devel",
        "pesign",
        "elfutils-libelf-devel",
        "openssl-devel",
        "bison",
        "flex",
        "kernel-devel-{release}",
    )
    rpm_source_repos: tuple[str, ...] = ("fedora-source", "updates-source")
    deb_headers_package: str = "linux-headers-{release}"

    # ── Source acquisition ──────────────────────────────────────
    source_url: str = DEFAULT_SOURCE_URL

    # ── Execution ───────────────────────────────────────────────
    workspace_root: Path | None = None
    require_root: bool = True
    progress_queue_size: int = Field(default=10, ge=1)
    command_timeout: int | None = Field(default=None, ge=1)
    download_timeout: int | None = Field(default=None, ge=1)

    @field_validator("source_url")
    @classmethod
    def _source_url_has_version(cls, v: str) -> str:
        if "{version}" not in v:
            raise ValueError("source_url must contain a '{version}' placeholder")
        return v

    # ── Derived paths ───────────────────────────────────────────

    @property
    def artifact_name(self) -> str:
        """File name of the compiled module (``ec_sys.ko``)."""
        return f"{self.module_name}.ko"

    @property
    def write_param_path(self) -> Path:
        return self.sys_module_root / self.module_name / "parameters" / self.write_param

    def headers_dir(self, release: str) -> Path:
        """Kernel build/headers directory for ``release``."""
        return self.modules_root / release / "build"

    def extra_modules_dir(self, release: str) -> Path:
        """Out-of-tree module install directory for ``release``."""
        return self.modules_root / release / "extra"

    def installed_artifact(self, release: str) -> Path:
        return self.extra_modules_dir(release) / self.artifact_name

    def kernel_config(self, release: str) -> Path:
        return self.boot_dir / f"config-{release}"

    def symvers_path(self, release: str) -> Path:
        return self.kernel_src_root / release / "Module.symvers"
