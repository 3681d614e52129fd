"""Fault monitoring: dispatch pipeline, entry points and host wiring."""

from faultwatch.monitor.dispatcher import FaultDispatcher
from faultwatch.monitor.factory import create_fault_monitor
from faultwatch.monitor.hooks import install_hooks
from faultwatch.monitor.log_sink import LogSink
from faultwatch.monitor.monitor import FaultMonitor
from faultwatch.monitor.suppress import faults_suppressed, suppress_faults

__all__ = [
    "FaultDispatcher",
    "FaultMonitor",
    "LogSink",
    "create_fault_monitor",
    "faults_suppressed",
    "install_hooks",
    "suppress_faults",
]
