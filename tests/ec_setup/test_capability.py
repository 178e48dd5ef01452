"""
Tests for L3 detection — module capability probe.
"""

from __future__ import annotations

import os

from ecsetup.core.services.ec_setup.detection.capability import (
    CapabilityState,
    check_capability,
    has_write_support,
    is_module_loaded,
    probe_capability,
)


class TestModuleLoaded:
    def test_not_listed(self, host, settings):
        assert is_module_loaded(settings) is False

    def test_listed(self, host, settings):
        host.load_module()
        assert is_module_loaded(settings) is True

    def test_name_prefix_does_not_match(self, host, settings):
        host.proc_modules.write_text("ec_sys_helper 16384 0 - Live 0x0\n")
        assert is_module_loaded(settings) is False

    def test_missing_proc_file(self, host, settings):
        host.proc_modules.unlink()
        assert is_module_loaded(settings) is False

    def test_blank_lines_ignored(self, host, settings):
        host.proc_modules.write_text("\n\nec_sys 16384 0 - Live 0x0\n")
        assert is_module_loaded(settings) is True


class TestWriteSupport:
    def test_yes(self, host, settings):
        host.load_module(write_support=True)
        assert has_write_support(settings) is True

    def test_no(self, host, settings):
        host.load_module(write_support=False)
        assert has_write_support(settings) is False

    def test_numeric_one(self, host, settings):
        host.load_module()
        host.param_file.write_text("1\n")
        assert has_write_support(settings) is True

    def test_unexpected_value(self, host, settings):
        host.load_module()
        host.param_file.write_text("yes\n")
        assert has_write_support(settings) is False

    def test_missing_param_file(self, host, settings):
        assert has_write_support(settings) is False


class TestCheckCapability:
    def test_ready(self, host, settings):
        host.load_module(write_support=True)
        assert check_capability(settings) is CapabilityState.READY

    def test_loaded_without_write_support(self, host, settings):
        host.load_module(write_support=False)
        assert check_capability(settings) is CapabilityState.NOT_READY

    def test_param_without_module_listed(self, host, settings):
        # Stale parameter file but the module is not in the list
        host.param_file.parent.mkdir(parents=True)
        host.param_file.write_text("Y\n")
        assert check_capability(settings) is CapabilityState.NOT_READY

    def test_probe_details(self, host, settings):
        host.load_module(write_support=True)
        status = probe_capability(settings)
        assert status.loaded and status.write_support and status.device_present
        assert status.state is CapabilityState.READY
        assert status.to_dict() == {
            "module": "ec_sys",
            "loaded": True,
            "write_support": True,
            "device_present": True,
            "state": "ready",
        }

    def test_probe_not_loaded(self, settings):
        status = probe_capability(settings)
        assert status.state is CapabilityState.NOT_READY
        assert status.device_present is False

    def test_probe_unreadable_debugfs(self, host, settings, monkeypatch):
        # debugfs is root-only: stat of the io file is refused for users
        host.load_module(write_support=True)
        denied = str(host.ec_io_path)
        real_stat = os.stat

        def _stat(path, *args, **kwargs):
            if os.fspath(path) == denied:
                raise PermissionError(13, "Permission denied", denied)
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(os, "stat", _stat)
        status = probe_capability(settings)

        assert status.device_present is False
        assert status.state is CapabilityState.READY
