"""Convenience factory for wiring the fault-monitoring stack."""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import TextIO

from faultwatch.alerting.rate_limiter import AlertRateLimiter
from faultwatch.alerting.transport import MailTransport, build_transport
from faultwatch.core.config import Settings, build_policy
from faultwatch.core.host import HostEnvironment
from faultwatch.events.builder import EventBuilder
from faultwatch.monitor.dispatcher import FaultDispatcher
from faultwatch.monitor.log_sink import LogSink
from faultwatch.monitor.monitor import FaultMonitor


def create_fault_monitor(
    settings: Settings,
    host: HostEnvironment | None = None,
    transport: MailTransport | None = None,
    output: TextIO | None = None,
    exit_fn: Callable[[int], object] | None = None,
) -> FaultMonitor:
    """Build a FaultMonitor from settings.

    The host defaults to a batch run of the current program. A server
    builds one monitor per request with ``HostEnvironment.for_request``.
    The transport defaults to the one configured under ``alerts.mail``.
    """
    policy = build_policy(settings)
    host = host or HostEnvironment.batch()
    if transport is None:
        transport = build_transport(settings.alerts)

    sink = LogSink(policy.log_path, policy.max_log_chars)
    limiter = AlertRateLimiter(policy, transport=transport, clock=host.clock)
    dispatcher = FaultDispatcher(
        policy,
        sink,
        limiter,
        host,
        transport=transport,
        output=output,
    )
    builder = EventBuilder(hide_third_party_frames=policy.hide_third_party_frames)

    return FaultMonitor(
        builder,
        dispatcher,
        report_mask=policy.report_mask,
        exit_fn=exit_fn or sys.exit,
    )
