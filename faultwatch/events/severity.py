"""Fault kind → severity classification tables."""

from __future__ import annotations

from faultwatch.core.types import FaultKind, Severity

# ── Severity mapping ────────────────────────────────────────────

_KIND_SEVERITY: dict[int, Severity] = {
    FaultKind.ERROR: Severity.FATAL_ERROR,
    FaultKind.USER_ERROR: Severity.FATAL_ERROR,
    FaultKind.WARNING: Severity.WARNING,
    FaultKind.USER_WARNING: Severity.WARNING,
    FaultKind.NOTICE: Severity.NOTICE,
    FaultKind.USER_NOTICE: Severity.NOTICE,
    FaultKind.DEPRECATED: Severity.DEPRECATED,
    FaultKind.USER_DEPRECATED: Severity.DEPRECATED,
    FaultKind.PARSE: Severity.PARSE_ERROR,
    FaultKind.CORE_ERROR: Severity.CORE_ERROR,
    FaultKind.CORE_WARNING: Severity.CORE_WARNING,
    FaultKind.COMPILE_ERROR: Severity.COMPILE_ERROR,
    FaultKind.COMPILE_WARNING: Severity.COMPILE_WARNING,
    FaultKind.RECOVERABLE_ERROR: Severity.RECOVERABLE_ERROR,
}

# Kinds that end the process when seen at teardown.
SHUTDOWN_FATAL_KINDS: frozenset[int] = frozenset(
    {
        FaultKind.ERROR,
        FaultKind.USER_ERROR,
        FaultKind.PARSE,
        FaultKind.CORE_ERROR,
        FaultKind.CORE_WARNING,
        FaultKind.COMPILE_ERROR,
        FaultKind.COMPILE_WARNING,
    }
)

# 0 is the kind of an exception that never declared one.
EXCEPTION_FATAL_KINDS: frozenset[int] = frozenset(
    {0, FaultKind.ERROR, FaultKind.USER_ERROR}
)

# Checked in order; the first matching base class wins.
_WARNING_KINDS: tuple[tuple[type[Warning], FaultKind], ...] = (
    (DeprecationWarning, FaultKind.DEPRECATED),
    (PendingDeprecationWarning, FaultKind.DEPRECATED),
    (FutureWarning, FaultKind.USER_DEPRECATED),
    (SyntaxWarning, FaultKind.COMPILE_WARNING),
    (ImportWarning, FaultKind.NOTICE),
    (ResourceWarning, FaultKind.NOTICE),
    (UserWarning, FaultKind.USER_WARNING),
)


def classify(code: int) -> Severity:
    """Map any integer kind code to a severity. Unmapped codes are UNKNOWN."""
    return _KIND_SEVERITY.get(code, Severity.UNKNOWN)


def warning_kind(category: type[Warning]) -> FaultKind:
    """Kind code for a ``warnings`` category."""
    for base, kind in _WARNING_KINDS:
        if issubclass(category, base):
            return kind
    return FaultKind.WARNING


def exception_kind(exc: BaseException) -> int:
    """Kind code an exception carries, ERROR unless it declares ``fault_kind``."""
    kind = getattr(exc, "fault_kind", None)
    if isinstance(kind, int) and not isinstance(kind, bool):
        return kind
    return FaultKind.ERROR
