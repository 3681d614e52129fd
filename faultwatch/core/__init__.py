"""Core module: config, types, host facts, logging."""

from faultwatch.core.config import Policy, Settings, build_policy, load_settings
from faultwatch.core.exceptions import ConfigError, FaultwatchError, TransportError
from faultwatch.core.host import HostEnvironment
from faultwatch.core.logging import setup_logging
from faultwatch.core.types import (
    ALL_KINDS,
    AlertDecision,
    DenyReason,
    DispatchOutcome,
    Disposition,
    FaultEvent,
    FaultKind,
    FaultOrigin,
    LastError,
    RecoverableFault,
    Severity,
)

__all__ = [
    "ALL_KINDS",
    "AlertDecision",
    "ConfigError",
    "DenyReason",
    "DispatchOutcome",
    "Disposition",
    "FaultEvent",
    "FaultKind",
    "FaultOrigin",
    "FaultwatchError",
    "HostEnvironment",
    "LastError",
    "Policy",
    "RecoverableFault",
    "Settings",
    "Severity",
    "TransportError",
    "build_policy",
    "load_settings",
    "setup_logging",
]
