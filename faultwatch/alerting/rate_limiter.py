"""Rolling-hour alert budget backed by a small persistent window store."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import IO, Any

import structlog

from faultwatch.core.config import Policy
from faultwatch.core.host import Clock, local_now
from faultwatch.core.timestamps import format_timestamp, parse_timestamp
from faultwatch.core.types import AlertDecision, DenyReason

logger = structlog.get_logger(__name__)

WINDOW = timedelta(hours=1)

_fcntl: Any = None


def _get_fcntl() -> Any:
    """Lazy import fcntl (Unix only)."""
    global _fcntl  # noqa: PLW0603
    if _fcntl is None and sys.platform != "win32":
        import fcntl

        _fcntl = fcntl
    return _fcntl


class AlertRateLimiter:
    """Decides whether an alert may be sent under a rolling-hour budget.

    The window store holds one timestamp per line for every alert admitted
    in roughly the last hour. Each admission check is a single session on
    the store: open, lock, scan and prune, decide, rewrite, close. The
    store is only rewritten when an alert is admitted, so a full window
    stays byte-identical until its oldest entry ages out.
    """

    def __init__(
        self,
        policy: Policy,
        transport: object | None = None,
        clock: Clock = local_now,
    ) -> None:
        self._enabled = policy.alerts_enabled
        self._recipient = policy.recipient
        self._store_path: Path | None = policy.window_store_path
        self._marker = policy.alert_failure_marker
        self._max_per_hour = policy.max_alerts_per_hour
        self._has_transport = transport is not None
        self._clock = clock

    @property
    def store_path(self) -> Path | None:
        return self._store_path

    def is_guarded(self, candidate_message: str) -> bool:
        """True when no admission may even be attempted (no I/O needed)."""
        return (
            not self._enabled
            or not self._recipient
            or not self._has_transport
            or self._store_path is None
            or (bool(self._marker) and self._marker in candidate_message)
        )

    def try_admit(self, candidate_message: str, now: datetime | None = None) -> AlertDecision:
        """Admit the alert and record it, or deny with a reason."""
        if self.is_guarded(candidate_message):
            return AlertDecision.deny(DenyReason.DISABLED_OR_GUARDED)

        moment = now if now is not None else self._clock()
        if moment.tzinfo is None:
            moment = moment.astimezone()

        try:
            handle = self._open(self._store_path)
        except OSError as exc:
            logger.warning("alert_store_unreadable", path=str(self._store_path), error=str(exc))
            return AlertDecision.deny(DenyReason.STORE_UNREADABLE)

        try:
            return self._session(handle, moment)
        finally:
            self._close(handle)

    # ── Store session steps ─────────────────────────────────────

    def _open(self, path: Path) -> IO[str]:
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            # undecodable lines fail to parse and are dropped on rewrite
            return os.fdopen(fd, "r+", encoding="utf-8", errors="replace")
        except Exception:
            os.close(fd)
            raise

    def _session(self, handle: IO[str], moment: datetime) -> AlertDecision:
        try:
            self._lock(handle)
            kept = self._scan(handle, moment)
        except OSError as exc:
            logger.warning("alert_store_unreadable", path=str(self._store_path), error=str(exc))
            return AlertDecision.deny(DenyReason.STORE_UNREADABLE)

        if kept is None:
            logger.info(
                "alert_budget_exceeded",
                path=str(self._store_path),
                max_per_hour=self._max_per_hour,
            )
            return AlertDecision.deny(DenyReason.BUDGET_EXCEEDED)

        try:
            self._rewrite(handle, [format_timestamp(moment), *kept])
        except OSError as exc:
            logger.warning(
                "alert_store_write_failed", path=str(self._store_path), error=str(exc)
            )
            return AlertDecision.deny(DenyReason.STORE_WRITE_FAILED)

        return AlertDecision.admit()

    def _close(self, handle: IO[str]) -> None:
        try:
            handle.close()
        except OSError as exc:
            logger.warning(
                "alert_store_close_failed", path=str(self._store_path), error=str(exc)
            )

    def _lock(self, handle: IO[str]) -> None:
        # Released when the handle is closed.
        fcntl = _get_fcntl()
        if fcntl is not None:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)

    def _scan(self, handle: IO[str], moment: datetime) -> list[str] | None:
        """Entries still inside the window, or None once the budget is reached."""
        cutoff = moment - WINDOW
        kept: list[str] = []
        for line in handle.read().splitlines():
            stamp = parse_timestamp(line)
            if stamp is None or stamp <= cutoff:
                continue
            kept.append(line)
            if len(kept) >= self._max_per_hour:
                return None
        return kept

    def _rewrite(self, handle: IO[str], lines: list[str]) -> None:
        handle.seek(0)
        handle.truncate()
        handle.write("".join(f"{line}\n" for line in lines))
        handle.flush()
        os.fsync(handle.fileno())
