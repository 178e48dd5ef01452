"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions WRITE to the system: subprocess calls, module
loading, downloads, and file writes inside the build workspace.
"""

from ecsetup.core.services.ec_setup.execution.activator import (  # noqa: F401
    activate,
    load_command,
    unload_command,
)
from ecsetup.core.services.ec_setup.execution.download import (  # noqa: F401
    Fetcher,
    fetch_file,
    make_fetcher,
)
from ecsetup.core.services.ec_setup.execution.source_tree import (  # noqa: F401
    extraversion_line,
    find_source_package,
    find_source_tree,
    patch_extraversion,
    seed_kernel_config,
    write_module_makefile,
)
from ecsetup.core.services.ec_setup.execution.subprocess_runner import (  # noqa: F401
    CommandRunner,
)
from ecsetup.core.services.ec_setup.execution.workspace import (  # noqa: F401
    build_workspace,
)
