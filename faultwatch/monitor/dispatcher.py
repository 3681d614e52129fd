"""Central fault dispatcher: log, echo, alert, then terminate or redirect."""

from __future__ import annotations

import html
import sys
from collections.abc import Callable
from typing import TextIO, TypeVar
from urllib.parse import urlsplit

import structlog

from faultwatch.alerting.rate_limiter import AlertRateLimiter
from faultwatch.alerting.transport import MailTransport
from faultwatch.core.config import Policy
from faultwatch.core.host import HostEnvironment
from faultwatch.core.types import (
    AlertDecision,
    DenyReason,
    DispatchOutcome,
    Disposition,
    FaultEvent,
)
from faultwatch.events.builder import render_envelope, render_message
from faultwatch.monitor.log_sink import LogSink
from faultwatch.monitor.suppress import faults_suppressed

logger = structlog.get_logger(__name__)

T = TypeVar("T")

SUBJECT_SUFFIX = "Error Notification"
SEND_FAILURE_TEXT = "Error Notification Email Send Failure"
FATAL_TERMINATOR = "\nFATAL"

_STORE_FAILURE_WORDS: dict[DenyReason, str] = {
    DenyReason.STORE_UNREADABLE: "Open",
    DenyReason.STORE_WRITE_FAILED: "Write",
}


def to_html(text: str) -> str:
    """Escape text for a page and turn newlines into line breaks."""
    return html.escape(text, quote=True).replace("\n", "<br>\n")


def _same_page(target: str, request_uri: str) -> bool:
    if not request_uri:
        return False
    return urlsplit(target).path == urlsplit(request_uri).path


class FaultDispatcher:
    """Handles one FaultEvent at a time, synchronously.

    - Every event is appended to the fault log.
    - Batch runs always echo the entry; requests echo it only in verbose
      (non-live) mode, escaped for HTML.
    - Alerts go out only when the rate limiter admits them.
    - Fatal events end the run: a terminator in batch mode, a redirect or
      fallback response while serving a request.

    No step lets an exception escape: failures inside the pipeline are
    logged and the remaining steps still run.
    """

    def __init__(
        self,
        policy: Policy,
        sink: LogSink,
        limiter: AlertRateLimiter,
        host: HostEnvironment,
        transport: MailTransport | None = None,
        output: TextIO | None = None,
    ) -> None:
        self._policy = policy
        self._sink = sink
        self._limiter = limiter
        self._host = host
        self._transport = transport
        self._output = output if output is not None else (None if host.interactive else sys.stdout)

    @property
    def host(self) -> HostEnvironment:
        return self._host

    @property
    def sink(self) -> LogSink:
        return self._sink

    # ── Entry point ─────────────────────────────────────────────

    def dispatch(self, event: FaultEvent) -> DispatchOutcome:
        if faults_suppressed():
            return DispatchOutcome(disposition=Disposition.SUPPRESSED)

        message = self._step("render", render_message, event, default=event.message)
        entry = self._step("envelope", render_envelope, message, self._host, default=message)

        logged = self._step("log", self._log, entry, default=False)
        echo, fallback = self._step("echo", self._echo, entry, default=("", self._policy.fatal_html))
        decision, sent = self._step(
            "alert",
            self._alert,
            message,
            entry,
            default=(AlertDecision.deny(DenyReason.DISABLED_OR_GUARDED), False),
        )

        disposition, location, body = Disposition.CONTINUE, None, ""
        if event.fatal:
            disposition, location, body = self._step(
                "terminate",
                self._terminate,
                fallback,
                default=(Disposition.RESPOND, None, fallback),
            )

        return DispatchOutcome(
            disposition=disposition,
            logged=logged,
            echo=echo,
            alert=decision,
            alert_sent=sent,
            location=location,
            body=body,
        )

    def log_diagnostic(self, text: str) -> bool:
        """Append a pipeline diagnostic to the fault log with its header."""
        try:
            return self._sink.append(render_envelope(text, self._host))
        except Exception:
            logger.exception("diagnostic_append_error")
            return False

    # ── Steps ───────────────────────────────────────────────────

    def _step(self, name: str, fn: Callable[..., T], *args: object, default: T) -> T:
        try:
            return fn(*args)
        except Exception:
            logger.exception("dispatch_step_error", step=name)
            self.log_diagnostic(f"Fault dispatch step failed: {name}")
            return default

    def _output_visible(self) -> bool:
        return not self._host.interactive or self._policy.echo_in_output

    def _write(self, text: str) -> None:
        if self._output is None:
            return
        self._output.write(text)
        self._output.flush()

    def _log(self, entry: str) -> bool:
        if self._sink.append(entry):
            return True
        if self._output_visible():
            warning = f"Warning: fault log write failure: {self._sink.path}\n"
            self._write(to_html(warning) if self._host.interactive else warning)
        return False

    def _echo(self, entry: str) -> tuple[str, str]:
        """Echo the entry if policy allows. Returns (echo, fallback body)."""
        if not self._host.interactive:
            self._write(entry)
            return entry, ""
        if self._policy.echo_in_output:
            escaped = to_html(entry)
            self._write(escaped)
            return escaped, ""
        return "", self._policy.fatal_html

    def _alert(self, message: str, entry: str) -> tuple[AlertDecision, bool]:
        decision = self._limiter.try_admit(message)
        if decision.admitted:
            return decision, self._send(entry)

        word = _STORE_FAILURE_WORDS.get(decision.reason) if decision.reason else None
        if word is not None:
            self.log_diagnostic(
                f"Error Notification Email Log File {word} Error. Check file and permissions"
            )
        return decision, False

    def _send(self, entry: str) -> bool:
        subject = f"{self._host.hostname} {SUBJECT_SUFFIX}"
        detail: str | None = None
        if self._transport is None:
            detail = "no mail transport configured"
            sent = False
        else:
            try:
                sent = self._transport.send(subject, entry, [self._policy.recipient or ""])
            except Exception as exc:
                logger.exception("alert_transport_error", transport=type(self._transport).__name__)
                detail = str(exc)
                sent = False
            else:
                detail = self._transport.error_info

        if not sent:
            text = SEND_FAILURE_TEXT if not detail else f"{SEND_FAILURE_TEXT}\n{detail}"
            self.log_diagnostic(text)
        return sent

    def _terminate(self, fallback: str) -> tuple[Disposition, str | None, str]:
        if not self._host.interactive:
            self._write(FATAL_TERMINATOR)
            return Disposition.TERMINATE, None, ""

        target = self._policy.fatal_redirect
        # never redirect a request that is already on the redirect page
        if target and not _same_page(target, self._host.request_uri):
            return Disposition.REDIRECT, target, ""
        return Disposition.RESPOND, None, fallback
