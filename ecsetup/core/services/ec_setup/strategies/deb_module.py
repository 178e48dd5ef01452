"""
DEB family strategy — build the single driver file out of tree.

Debian/Ubuntu kernels ship complete build headers under
``/lib/modules/<release>/build``, so fetching ``ec_sys.c`` for the
matching upstream version and running kbuild against the headers
is enough. Headers are never installed automatically: their
package name varies across derivatives.
"""

from __future__ import annotations

from pathlib import Path

from ecsetup.core.services.ec_setup.detection.package_manager import PackageFamily
from ecsetup.core.services.ec_setup.errors import (
    ArtifactMissing,
    BuildFailed,
    EnvironmentUnready,
    InstallFailed,
    SourceAcquisitionFailed,
    SourcePreparationFailed,
)
from ecsetup.core.services.ec_setup.execution.source_tree import write_module_makefile
from ecsetup.core.services.ec_setup.strategies.base import (
    BuildContext,
    BuildStrategy,
    LogStream,
    StepInfo,
    install_artifact,
)


class DebModuleStrategy(BuildStrategy):
    """Lightweight out-of-tree build for apt-based hosts."""

    family = PackageFamily.DEB
    workspace_prefix = "ec_sys_module"

    def pipeline_steps(self) -> list[StepInfo]:
        return [
            StepInfo("check_headers", "Check kernel headers", EnvironmentUnready),
            StepInfo("prepare_workspace", "Prepare module workspace", SourcePreparationFailed),
            StepInfo("fetch_source", "Download driver source", SourceAcquisitionFailed),
            StepInfo("write_makefile", "Write module Makefile", SourcePreparationFailed),
            StepInfo("build", "Build module", BuildFailed),
            StepInfo("install", "Install and activate module", InstallFailed),
        ]

    @staticmethod
    def _module_dir(ctx: BuildContext) -> Path:
        return ctx.workspace / ctx.settings.module_name

    # ── Steps ───────────────────────────────────────────────────────

    def _step_check_headers(self, ctx: BuildContext) -> LogStream:
        headers = ctx.settings.headers_dir(ctx.kernel.release)
        if not headers.is_dir():
            package = ctx.settings.deb_headers_package.format(release=ctx.kernel.release)
            raise EnvironmentUnready(
                f"Kernel headers not found at {headers}. "
                f"Run: sudo apt-get install {package}"
            )
        yield f"Using kernel headers at {headers}"

    def _step_prepare_workspace(self, ctx: BuildContext) -> LogStream:
        module_dir = self._module_dir(ctx)
        module_dir.mkdir(parents=True, exist_ok=True)
        yield f"Working in {module_dir}"

    def _step_fetch_source(self, ctx: BuildContext) -> LogStream:
        url = ctx.settings.source_url.format(version=ctx.kernel.upstream_version)
        dest = self._module_dir(ctx) / f"{ctx.settings.module_name}.c"
        yield from ctx.fetcher(url, dest)

    def _step_write_makefile(self, ctx: BuildContext) -> LogStream:
        headers = ctx.settings.headers_dir(ctx.kernel.release)
        makefile = write_module_makefile(self._module_dir(ctx), ctx.settings.module_name, headers)
        yield f"Wrote {makefile}"

    def _step_build(self, ctx: BuildContext) -> LogStream:
        module_dir = self._module_dir(ctx)
        yield from ctx.run(["make"], cwd=module_dir)

        artifact = module_dir / ctx.settings.artifact_name
        if not artifact.is_file():
            raise ArtifactMissing(f"{ctx.settings.artifact_name} not found after build at {artifact}")
        ctx.artifact = artifact
        yield f"Built {artifact}"

    def _step_install(self, ctx: BuildContext) -> LogStream:
        yield from install_artifact(ctx)
