"""Wire a FaultMonitor into the interpreter's fault hooks."""

from __future__ import annotations

import atexit
import sys
import threading
import warnings
from collections.abc import Callable
from types import TracebackType

import structlog

from faultwatch.monitor.monitor import FaultMonitor

logger = structlog.get_logger(__name__)


def install_hooks(
    monitor: FaultMonitor,
    *,
    capture_warnings: bool = True,
    capture_exceptions: bool = True,
    capture_threads: bool = True,
    capture_shutdown: bool = True,
) -> Callable[[], None]:
    """Route warnings, uncaught exceptions and teardown through *monitor*.

    Returns a callable that restores the previous hooks.
    """
    previous_showwarning = warnings.showwarning
    previous_excepthook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def _showwarning(message, category, filename, lineno, file=None, line=None):
        if not monitor.on_warning(message, category, filename, lineno, file, line):
            previous_showwarning(message, category, filename, lineno, file, line)

    def _excepthook(
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            previous_excepthook(exc_type, exc, tb)
            return
        if exc.__traceback__ is None and tb is not None:
            exc = exc.with_traceback(tb)
        # The interpreter is already unwinding; let it exit on its own.
        monitor.on_exception(exc, terminate=False)

    def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
        if args.exc_value is None or issubclass(args.exc_type, SystemExit):
            previous_thread_hook(args)
            return
        monitor.on_exception(args.exc_value, terminate=False)

    if capture_warnings:
        warnings.showwarning = _showwarning
    if capture_exceptions:
        sys.excepthook = _excepthook
    if capture_threads:
        threading.excepthook = _thread_excepthook
    if capture_shutdown:
        atexit.register(monitor.on_shutdown)

    logger.debug(
        "fault_hooks_installed",
        warnings=capture_warnings,
        exceptions=capture_exceptions,
        threads=capture_threads,
        shutdown=capture_shutdown,
    )

    def uninstall() -> None:
        if capture_warnings and warnings.showwarning is _showwarning:
            warnings.showwarning = previous_showwarning
        if capture_exceptions and sys.excepthook is _excepthook:
            sys.excepthook = previous_excepthook
        if capture_threads and threading.excepthook is _thread_excepthook:
            threading.excepthook = previous_thread_hook
        if capture_shutdown:
            atexit.unregister(monitor.on_shutdown)
        logger.debug("fault_hooks_removed")

    return uninstall
