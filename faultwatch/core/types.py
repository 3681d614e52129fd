"""Domain types for fault events: kinds, severities, frames and decisions."""

from __future__ import annotations

from enum import IntEnum, StrEnum

from pydantic import BaseModel, ConfigDict, Field


class FaultKind(IntEnum):
    """Numeric fault kind codes.

    Values are distinct bits so a reporting mask can select any subset.
    """

    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384


ALL_KINDS: int = sum(FaultKind)


class Severity(StrEnum):
    """Human-facing severity label of a fault."""

    WARNING = "Warning"
    NOTICE = "Notice"
    DEPRECATED = "Deprecated"
    RECOVERABLE_ERROR = "Recoverable Error"
    FATAL_ERROR = "Fatal Error"
    PARSE_ERROR = "Parse Error"
    CORE_ERROR = "Core Error"
    CORE_WARNING = "Core Warning"
    COMPILE_ERROR = "Compile Error"
    COMPILE_WARNING = "Compile Warning"
    UNKNOWN = "Unknown"


class FaultOrigin(StrEnum):
    """Interception point a fault was reported through."""

    RECOVERABLE = "RECOVERABLE"
    EXCEPTION = "EXCEPTION"
    SHUTDOWN = "SHUTDOWN"


class CallKind(StrEnum):
    """How a backtrace frame's function was bound."""

    INSTANCE = "instance"
    STATIC = "static"


# ── Raw fault records (builder input) ───────────────────────────


class RecoverableFault(BaseModel):
    """A non-fatal fault reported while the process continues."""

    kind: int
    message: str
    file: str | None = None
    line: int | None = None
    escaped: bool = False


class LastError(BaseModel):
    """The last fault recorded before process teardown."""

    kind: int
    message: str
    file: str | None = None
    line: int | None = None
    escaped: bool = False


# ── Normalised event ────────────────────────────────────────────


class CallSite(BaseModel):
    """One ``at ...`` position inside an exception's own trace."""

    model_config = ConfigDict(frozen=True)

    owner: str | None = None
    function: str | None = None
    file: str | None = None
    line: int | None = None


class CauseLink(BaseModel):
    """One exception in a "caused by" chain, with its call sites innermost first."""

    model_config = ConfigDict(frozen=True)

    type_name: str
    message: str = ""
    file: str | None = None
    line: int | None = None
    frames: tuple[CallSite, ...] = ()


class BacktraceFrame(BaseModel):
    """A captured call-stack frame with its arguments already summarised."""

    model_config = ConfigDict(frozen=True)

    index: int
    file: str | None = None
    line: int | None = None
    owner: str | None = None
    call_kind: CallKind | None = None
    function: str | None = None
    arguments: str | None = None


class FaultEvent(BaseModel):
    """One normalised fault occurrence. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    origin: FaultOrigin
    kind: int
    severity: Severity
    message: str
    file: str | None = None
    line: int | None = None
    cause_chain: tuple[CauseLink, ...] = Field(default_factory=tuple)
    backtrace: tuple[BacktraceFrame, ...] = Field(default_factory=tuple)
    fatal: bool = False


# ── Alert gating ────────────────────────────────────────────────


class DenyReason(StrEnum):
    """Why the rate limiter refused an alert."""

    DISABLED_OR_GUARDED = "disabled_or_guarded"
    STORE_UNREADABLE = "store_unreadable"
    BUDGET_EXCEEDED = "budget_exceeded"
    STORE_WRITE_FAILED = "store_write_failed"


class AlertDecision(BaseModel):
    """Outcome of a rate-limit check: admitted, or denied with a reason."""

    model_config = ConfigDict(frozen=True)

    admitted: bool
    reason: DenyReason | None = None

    @classmethod
    def admit(cls) -> AlertDecision:
        return cls(admitted=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> AlertDecision:
        return cls(admitted=False, reason=reason)


# ── Dispatch outcome ────────────────────────────────────────────


class Disposition(StrEnum):
    """What the host should do once a fault has been handled."""

    SUPPRESSED = "SUPPRESSED"
    CONTINUE = "CONTINUE"
    TERMINATE = "TERMINATE"
    REDIRECT = "REDIRECT"
    RESPOND = "RESPOND"


class DispatchOutcome(BaseModel):
    """Observable result of dispatching one fault."""

    model_config = ConfigDict(frozen=True)

    disposition: Disposition
    logged: bool = False
    echo: str = ""
    alert: AlertDecision | None = None
    alert_sent: bool = False
    location: str | None = None
    body: str = ""
