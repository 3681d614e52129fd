"""Normalisation of raw faults into FaultEvent records, plus their text."""

from __future__ import annotations

import html
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from faultwatch.core.host import HostEnvironment
from faultwatch.core.timestamps import format_timestamp
from faultwatch.core.types import (
    FaultEvent,
    FaultOrigin,
    LastError,
    RecoverableFault,
)
from faultwatch.events.backtrace import DEFAULT_MAX_DEPTH, capture_backtrace, render_backtrace
from faultwatch.events.cause_chain import format_cause_chain, links_from_exception
from faultwatch.events.severity import (
    EXCEPTION_FATAL_KINDS,
    SHUTDOWN_FATAL_KINDS,
    classify,
    exception_kind,
)

TRACE_LABEL = "Stack Trace:"


class EventBuilder:
    """Builds FaultEvents from the three interception points.

    - Recoverable faults get a freshly captured backtrace.
    - Exceptions carry their own cause chain instead.
    - Teardown faults have neither; the stack is already gone.
    """

    def __init__(
        self,
        hide_third_party_frames: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._hide_third_party = hide_third_party_frames
        self._max_depth = max_depth

    # ── Normalisation ───────────────────────────────────────────

    def normalize(self, origin: FaultOrigin, raw: Any, skip: int = 0) -> FaultEvent | None:
        """Build an event for *raw* according to its origin.

        Returns None for teardown records that are not fatal.
        """
        if origin == FaultOrigin.RECOVERABLE:
            return self.from_recoverable(raw, skip=skip + 1)
        if origin == FaultOrigin.EXCEPTION:
            return self.from_exception(raw)
        return self.from_shutdown(raw)

    def from_recoverable(
        self,
        fault: RecoverableFault,
        skip: int = 0,
        skip_modules: Iterable[str] = (),
    ) -> FaultEvent:
        """Event for a non-fatal fault.

        The backtrace drops this call and the entry point that made it,
        plus *skip* further frames and any leading *skip_modules* frames.
        """
        backtrace = capture_backtrace(
            skip=2 + skip,
            skip_modules=skip_modules,
            hide_third_party=self._hide_third_party,
            max_depth=self._max_depth,
        )
        return FaultEvent(
            origin=FaultOrigin.RECOVERABLE,
            kind=fault.kind,
            severity=classify(fault.kind),
            message=_decode(fault.message, fault.escaped),
            file=fault.file,
            line=fault.line if fault.file else None,
            backtrace=backtrace,
            fatal=False,
        )

    def from_exception(self, exc: BaseException) -> FaultEvent:
        """Event for an unhandled exception, with its cause chain."""
        kind = exception_kind(exc)
        links = links_from_exception(exc)
        outer = links[0]
        return FaultEvent(
            origin=FaultOrigin.EXCEPTION,
            kind=kind,
            severity=classify(kind),
            message=str(exc),
            file=outer.file,
            line=outer.line if outer.file else None,
            cause_chain=links,
            fatal=kind in EXCEPTION_FATAL_KINDS,
        )

    def from_shutdown(self, last_error: LastError | None) -> FaultEvent | None:
        """Event for a fatal condition seen at teardown, else None."""
        if last_error is None or last_error.kind not in SHUTDOWN_FATAL_KINDS:
            return None
        return FaultEvent(
            origin=FaultOrigin.SHUTDOWN,
            kind=last_error.kind,
            severity=classify(last_error.kind),
            message=_decode(last_error.message, last_error.escaped),
            file=last_error.file,
            line=last_error.line if last_error.file else None,
            fatal=True,
        )

    def without_trace(self, raw: RecoverableFault | BaseException) -> FaultEvent:
        """Minimal event for *raw* when the full build failed.

        Carries kind, severity and message only, so the fault is still
        logged and alerted even if its stack could not be rendered.
        """
        if isinstance(raw, BaseException):
            kind = exception_kind(raw)
            return FaultEvent(
                origin=FaultOrigin.EXCEPTION,
                kind=kind,
                severity=classify(kind),
                message=_safe_str(raw),
                fatal=kind in EXCEPTION_FATAL_KINDS,
            )
        return FaultEvent(
            origin=FaultOrigin.RECOVERABLE,
            kind=raw.kind,
            severity=classify(raw.kind),
            message=_decode(raw.message, raw.escaped),
            file=raw.file,
            line=raw.line if raw.file else None,
            fatal=False,
        )


# ── Rendering ───────────────────────────────────────────────────


def _decode(message: str, escaped: bool) -> str:
    return html.unescape(message) if escaped else message


def _safe_str(exc: BaseException) -> str:
    try:
        return str(exc)
    except Exception:
        return f"<unprintable {type(exc).__name__}>"


def render_body(event: FaultEvent) -> str:
    """``<Severity>: <message>`` followed by ``<file> line: <line>``."""
    body = f"{event.severity.value}: {event.message}"
    if event.file:
        body += f"\n{event.file}"
        # a line number only makes sense with a file
        if event.line is not None:
            body += f" line: {event.line}"
    return body


def render_trace(event: FaultEvent) -> str:
    if event.backtrace:
        return render_backtrace(event.backtrace)
    if event.cause_chain:
        return format_cause_chain(event.cause_chain)
    return ""


def render_message(event: FaultEvent) -> str:
    """Full message text: body, then the labelled trace when there is one."""
    body = render_body(event)
    trace = render_trace(event)
    if not trace:
        return body
    return f"{body}\n{TRACE_LABEL}\n{trace}"


def render_envelope(body: str, host: HostEnvironment, now: datetime | None = None) -> str:
    """Wrap text in the log entry header and trailing blank line."""
    moment = now if now is not None else host.now()
    return f"[{format_timestamp(moment)}] {host.describe()}\n{body}\n\n"
