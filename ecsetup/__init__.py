"""
ec-sys-setup — provision the ``ec_sys`` EC access module on Linux hosts.
"""

__version__ = "0.3.0"
