"""
RPM family strategy — rebuild the ACPI drivers from the distro's
kernel source package with EC debugfs enabled.

The distro kernel ships without ``CONFIG_ACPI_EC_DEBUGFS``, so
headers alone are not enough: the matching source RPM is unpacked
and patched in a private ``rpmbuild`` tree inside the workspace,
then only ``drivers/acpi`` is compiled.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ecsetup.core.services.ec_setup.detection.package_manager import PackageFamily
from ecsetup.core.services.ec_setup.errors import (
    ArtifactMissing,
    BuildFailed,
    CommandFailed,
    DependencyInstallFailed,
    InstallFailed,
    SourceAcquisitionFailed,
    SourcePreparationFailed,
)
from ecsetup.core.services.ec_setup.execution.source_tree import (
    find_source_package,
    find_source_tree,
    patch_extraversion,
    seed_kernel_config,
)
from ecsetup.core.services.ec_setup.strategies.base import (
    BuildContext,
    BuildStrategy,
    LogStream,
    StepInfo,
    install_artifact,
)

logger = logging.getLogger(__name__)

RPMBUILD_DIRS = ("BUILD", "RPMS", "SOURCES", "SPECS", "SRPMS")


class RpmRebuildStrategy(BuildStrategy):
    """Full source rebuild for dnf-based hosts."""

    family = PackageFamily.RPM
    workspace_prefix = "ec_sys_build"

    def pipeline_steps(self) -> list[StepInfo]:
        return [
            StepInfo("install_toolchain", "Install build toolchain and kernel headers", DependencyInstallFailed),
            StepInfo("setup_build_tree", "Set up RPM build tree", SourcePreparationFailed),
            StepInfo("download_source", "Download kernel source package", SourceAcquisitionFailed),
            StepInfo("locate_source_package", "Locate source package", SourceAcquisitionFailed),
            StepInfo("install_build_deps", "Install build dependencies", DependencyInstallFailed),
            StepInfo("install_source_package", "Install source package", SourcePreparationFailed),
            StepInfo("prepare_source", "Prepare kernel source tree", SourcePreparationFailed),
            StepInfo("locate_source_tree", "Locate kernel build directory", SourcePreparationFailed),
            StepInfo("patch_version", "Patch Makefile version", SourcePreparationFailed),
            StepInfo("configure", "Configure kernel", SourcePreparationFailed),
            StepInfo("modules_prepare", "Prepare module build", BuildFailed),
            StepInfo("build", "Build ACPI modules", BuildFailed),
            StepInfo("locate_artifact", "Locate built module", ArtifactMissing),
            StepInfo("install", "Install module", InstallFailed),
        ]

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _topdir(ctx: BuildContext) -> Path:
        return ctx.workspace / "rpmbuild"

    def _topdir_define(self, ctx: BuildContext) -> list[str]:
        return ["--define", f"_topdir {self._topdir(ctx)}"]

    # ── Steps ───────────────────────────────────────────────────────

    def _step_install_toolchain(self, ctx: BuildContext) -> LogStream:
        packages = [
            pkg.format(release=ctx.kernel.release)
            for pkg in ctx.settings.rpm_build_packages
        ]
        yield from ctx.run(["dnf", "install", "-y", *packages], needs_sudo=True)

    def _step_setup_build_tree(self, ctx: BuildContext) -> LogStream:
        topdir = self._topdir(ctx)
        for name in RPMBUILD_DIRS:
            (topdir / name).mkdir(parents=True, exist_ok=True)
        yield f"Build tree ready at {topdir}"

    def _step_download_source(self, ctx: BuildContext) -> LogStream:
        repos = list(ctx.settings.rpm_source_repos)
        if repos:
            try:
                yield from ctx.run(
                    ["dnf", "config-manager", "--set-enabled", *repos],
                    needs_sudo=True,
                )
            except CommandFailed as exc:
                # Often already enabled; the download below is the real check
                logger.info("Source repository enablement failed: %s", exc)
                yield f"Could not enable {', '.join(repos)} ({exc.reason}); continuing"

        yield from ctx.run(
            ["dnf", "download", "--source", f"kernel-{ctx.kernel.base_version}"],
            cwd=ctx.workspace,
        )

    def _step_locate_source_package(self, ctx: BuildContext) -> LogStream:
        ctx.source_package = find_source_package(ctx.workspace)
        yield f"Found {ctx.source_package.name}"

    def _step_install_build_deps(self, ctx: BuildContext) -> LogStream:
        assert ctx.source_package is not None
        yield from ctx.run(
            ["dnf", "builddep", "-y", str(ctx.source_package)],
            needs_sudo=True,
        )

    def _step_install_source_package(self, ctx: BuildContext) -> LogStream:
        assert ctx.source_package is not None
        yield from ctx.run(
            ["rpm", "-i", *self._topdir_define(ctx), str(ctx.source_package)],
        )

    def _step_prepare_source(self, ctx: BuildContext) -> LogStream:
        yield from ctx.run(
            [
                "rpmbuild", "-bp",
                *self._topdir_define(ctx),
                f"--target={ctx.kernel.arch}",
                "kernel.spec",
            ],
            cwd=self._topdir(ctx) / "SPECS",
        )

    def _step_locate_source_tree(self, ctx: BuildContext) -> LogStream:
        build_root = self._topdir(ctx) / "BUILD"
        tree = find_source_tree(build_root)
        if tree is None:
            raise SourcePreparationFailed(f"Could not find kernel build directory in {build_root}")
        ctx.source_tree = tree
        yield f"Found kernel build dir: {tree}"

    def _step_patch_version(self, ctx: BuildContext) -> LogStream:
        assert ctx.source_tree is not None
        line = patch_extraversion(ctx.source_tree / "Makefile", ctx.kernel)
        yield f"Set {line}"

    def _step_configure(self, ctx: BuildContext) -> LogStream:
        assert ctx.source_tree is not None
        config_src = ctx.settings.kernel_config(ctx.kernel.release)
        option = ctx.settings.debug_config_option
        seed_kernel_config(config_src, ctx.source_tree, option)
        yield f"Seeded .config from {config_src} with {option}=m"

    def _step_modules_prepare(self, ctx: BuildContext) -> LogStream:
        assert ctx.source_tree is not None
        yield from ctx.run(["make", "modules_prepare"], cwd=ctx.source_tree)

        symvers = ctx.settings.symvers_path(ctx.kernel.release)
        if symvers.is_file():
            try:
                shutil.copy(symvers, ctx.source_tree / "Module.symvers")
                yield f"Copied {symvers}"
            except OSError as exc:
                logger.warning("Could not copy %s: %s", symvers, exc)
                yield f"Could not copy {symvers}; continuing without it"

    def _step_build(self, ctx: BuildContext) -> LogStream:
        assert ctx.source_tree is not None
        yield "Building module (this may take a while)..."
        yield from ctx.run(
            ["make", f"M={ctx.settings.driver_subdir}", "modules"],
            cwd=ctx.source_tree,
            env_overrides={"KBUILD_MODPOST_WARN": "1"},
        )

    def _step_locate_artifact(self, ctx: BuildContext) -> LogStream:
        assert ctx.source_tree is not None
        artifact = ctx.source_tree / ctx.settings.driver_subdir / ctx.settings.artifact_name
        if not artifact.is_file():
            raise ArtifactMissing(f"{ctx.settings.artifact_name} not found after build at {artifact}")
        ctx.artifact = artifact
        yield f"Built {artifact}"

    def _step_install(self, ctx: BuildContext) -> LogStream:
        yield from install_artifact(ctx)
