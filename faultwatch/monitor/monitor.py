"""FaultMonitor: the three interception entry points plus direct reporting."""

from __future__ import annotations

import sys
from collections.abc import Callable
from contextvars import ContextVar

import structlog

from faultwatch.core.types import (
    ALL_KINDS,
    DispatchOutcome,
    Disposition,
    FaultEvent,
    FaultKind,
    LastError,
    RecoverableFault,
)
from faultwatch.events.builder import EventBuilder
from faultwatch.events.severity import warning_kind
from faultwatch.monitor.dispatcher import FaultDispatcher
from faultwatch.monitor.suppress import faults_suppressed

logger = structlog.get_logger(__name__)

FATAL_EXIT_CODE = 255

# Frames from these modules sit between the faulting code and on_warning.
WARNING_MACHINERY = frozenset({"warnings", "_py_warnings", "faultwatch.monitor.hooks"})

_handling: ContextVar[bool] = ContextVar("faultwatch_handling", default=False)


class FaultMonitor:
    """Entry points a host calls when something goes wrong.

    - ``on_warning`` for recoverable faults (``warnings.showwarning`` shape),
    - ``on_exception`` for unhandled exceptions,
    - ``on_shutdown`` at process teardown,

    plus ``report`` for application-raised faults and ``log_error`` for
    writing straight to the fault log. Nothing is registered with the
    interpreter here; see ``faultwatch.monitor.hooks.install_hooks``.

    A fault raised while another is being handled is not handled again.
    """

    def __init__(
        self,
        builder: EventBuilder,
        dispatcher: FaultDispatcher,
        report_mask: int = ALL_KINDS,
        exit_fn: Callable[[int], object] = sys.exit,
    ) -> None:
        self._builder = builder
        self._dispatcher = dispatcher
        self._report_mask = report_mask
        self._exit = exit_fn
        self._last_error: LastError | None = None

    @property
    def dispatcher(self) -> FaultDispatcher:
        return self._dispatcher

    @property
    def last_error(self) -> LastError | None:
        return self._last_error

    def reports(self, kind: int) -> bool:
        """Whether *kind* is selected by the reporting mask."""
        return bool(kind & self._report_mask)

    # ── Recoverable faults ──────────────────────────────────────

    def on_warning(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str | None,
        lineno: int | None,
        file: object = None,
        line: str | None = None,
    ) -> bool:
        """Handle a warning. Returns False to let the default display run."""
        kind = warning_kind(category)
        if not self.reports(kind) or _handling.get():
            return False
        if faults_suppressed():
            return True

        fault = RecoverableFault(kind=kind, message=str(message), file=filename, line=lineno)
        token = _handling.set(True)
        try:
            try:
                event = self._builder.from_recoverable(fault, skip_modules=WARNING_MACHINERY)
            except Exception:
                logger.exception("fault_event_build_failed", origin="warning")
                event = self._builder.without_trace(fault)
            self._dispatch_event(event, "warning")
        finally:
            _handling.reset(token)
        return True

    def report(
        self,
        message: str,
        kind: int = FaultKind.USER_WARNING,
        file: str | None = None,
        line: int | None = None,
    ) -> DispatchOutcome | None:
        """Report an application-detected recoverable fault.

        File and line default to the caller's position. Returns None when
        the kind is masked out or a fault is already being handled.
        """
        if not self.reports(kind) or _handling.get():
            return None
        if file is None:
            caller = sys._getframe(1)
            file, line = caller.f_code.co_filename, caller.f_lineno

        fault = RecoverableFault(kind=kind, message=message, file=file, line=line)
        token = _handling.set(True)
        try:
            try:
                event = self._builder.from_recoverable(fault)
            except Exception:
                logger.exception("fault_event_build_failed", origin="report")
                event = self._builder.without_trace(fault)
            return self._dispatch_event(event, "report")
        finally:
            _handling.reset(token)

    # ── Unhandled exceptions ────────────────────────────────────

    def on_exception(self, exc: BaseException, terminate: bool = True) -> DispatchOutcome | None:
        """Handle an exception nobody caught.

        When *terminate* is set and the outcome is TERMINATE (fatal, batch
        mode) the process exits with FATAL_EXIT_CODE.
        """
        if _handling.get():
            logger.error("fault_during_fault_handling", error=repr(exc))
            return None

        token = _handling.set(True)
        try:
            try:
                event = self._builder.from_exception(exc)
            except Exception:
                logger.exception("fault_event_build_failed", origin="exception")
                event = self._builder.without_trace(exc)
            outcome = self._dispatch_event(event, "exception")
        finally:
            _handling.reset(token)

        if terminate and outcome is not None and outcome.disposition == Disposition.TERMINATE:
            self._exit(FATAL_EXIT_CODE)
        return outcome

    # ── Teardown ────────────────────────────────────────────────

    def record_last_error(
        self,
        kind: int,
        message: str,
        file: str | None = None,
        line: int | None = None,
        escaped: bool = False,
    ) -> None:
        """Remember the latest fatal-capable condition for on_shutdown."""
        self._last_error = LastError(
            kind=kind, message=message, file=file, line=line, escaped=escaped
        )

    def on_shutdown(self, last_error: LastError | None = None) -> DispatchOutcome | None:
        """Report the last recorded error if it is fatal. No-op otherwise."""
        record = last_error if last_error is not None else self._last_error
        try:
            event = self._builder.from_shutdown(record)
        except Exception:
            logger.exception("fault_handling_error", origin="shutdown")
            return None
        if event is None:
            return None
        return self._dispatch_event(event, "shutdown")

    # ── Direct log ──────────────────────────────────────────────

    def log_error(self, message: str, wrap: bool = True) -> bool:
        """Write a message to the fault log, with the entry header by default."""
        if wrap:
            return self._dispatcher.log_diagnostic(message)
        return self._dispatcher.sink.append(message)

    def _dispatch_event(self, event: FaultEvent, origin: str) -> DispatchOutcome | None:
        try:
            return self._dispatcher.dispatch(event)
        except Exception:
            logger.exception("fault_handling_error", origin=origin)
            return None
