"""Fault events: classification, backtraces, cause chains, rendering."""

from faultwatch.events.backtrace import capture_backtrace, render_backtrace, summarize_arguments
from faultwatch.events.builder import EventBuilder, render_envelope, render_message
from faultwatch.events.cause_chain import format_cause_chain, format_exception_chain
from faultwatch.events.severity import classify

__all__ = [
    "EventBuilder",
    "capture_backtrace",
    "classify",
    "format_cause_chain",
    "format_exception_chain",
    "render_backtrace",
    "render_envelope",
    "render_message",
    "summarize_arguments",
]
