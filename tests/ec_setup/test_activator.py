"""
Tests for L4 execution — activation before any build.
"""

from __future__ import annotations

from ecsetup.core.services.ec_setup.detection.capability import CapabilityState
from ecsetup.core.services.ec_setup.execution.activator import (
    activate,
    load_command,
    unload_command,
)


def test_commands(settings):
    assert load_command(settings) == ["modprobe", "ec_sys", "write_support=1"]
    assert unload_command(settings) == ["modprobe", "-r", "ec_sys"]


def test_already_active_runs_nothing(host, settings, runner):
    host.module_available = True
    host.load_module(write_support=True)
    lines: list[str] = []

    assert activate(settings, runner, lines.append) is CapabilityState.READY
    assert runner.calls == []
    assert lines == ["ec_sys is already active with write support"]


def test_not_loaded_single_load(host, settings, runner):
    host.module_available = True
    lines: list[str] = []

    assert activate(settings, runner, lines.append) is CapabilityState.READY
    assert runner.commands() == ["modprobe ec_sys write_support=1"]
    assert all(c.needs_sudo and c.quiet for c in runner.calls)
    assert lines[-1] == "ec_sys is active with write support"


def test_loaded_without_write_support_reloads(host, settings, runner):
    host.module_available = True
    host.load_module(write_support=False)

    assert activate(settings, runner) is CapabilityState.READY
    assert runner.commands() == [
        "modprobe -r ec_sys",
        "modprobe ec_sys write_support=1",
    ]


def test_unload_failure_still_tries_load(host, settings, runner):
    host.module_available = True
    host.load_module(write_support=False)
    runner.fail("modprobe -r")

    state = activate(settings, runner)

    assert runner.commands() == [
        "modprobe -r ec_sys",
        "modprobe ec_sys write_support=1",
    ]
    # The simulated load replaces the entry with write support on
    assert state is CapabilityState.READY


def test_module_unavailable(host, settings, runner):
    lines: list[str] = []
    assert activate(settings, runner, lines.append) is CapabilityState.NOT_READY
    assert lines[-1] == "ec_sys could not be activated with write support"


def test_load_reports_success_but_probe_disagrees(host, settings, runner):
    # modprobe exits 0 but the parameter stays off: the probe decides
    host.module_available = True
    original_apply = runner._apply

    def _load_without_param(call):
        if call.cmd[0] == "modprobe" and "-r" not in call.cmd:
            host.load_module(write_support=False)
            return True
        return original_apply(call)

    runner._apply = _load_without_param
    assert activate(settings, runner) is CapabilityState.NOT_READY
