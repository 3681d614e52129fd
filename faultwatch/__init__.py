"""Fault capture, logging and rate-limited email alerting."""

from faultwatch.monitor.factory import create_fault_monitor
from faultwatch.monitor.hooks import install_hooks
from faultwatch.monitor.monitor import FaultMonitor
from faultwatch.monitor.suppress import suppress_faults

__all__ = [
    "FaultMonitor",
    "create_fault_monitor",
    "install_hooks",
    "suppress_faults",
]
