"""Append-only fault log with a per-entry character budget."""

from __future__ import annotations

from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


def truncation_marker(max_chars: int) -> str:
    """Suffix appended to an entry cut at *max_chars*."""
    return f" | ERROR MESSAGE TRUNCATED AFTER {max_chars} CHARACTERS\n\n"


class LogSink:
    """Appends formatted entries to the fault log file.

    ``append`` never raises: a failed write is reported through its return
    value so that logging can never start a second round of fault handling.
    """

    def __init__(self, path: Path | str, max_chars: int) -> None:
        self._path = Path(path)
        self._max_chars = max_chars

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_chars(self) -> int:
        return self._max_chars

    def clip(self, text: str) -> str:
        """Text as it will be written, truncated with a marker if too long."""
        if len(text) > self._max_chars:
            return text[: self._max_chars] + truncation_marker(self._max_chars)
        return text

    def append(self, text: str) -> bool:
        """Append one entry. Returns True on success."""
        entry = self.clip(text)
        try:
            with open(self._path, "a", encoding="utf-8", errors="replace") as f:
                f.write(entry)
        except OSError as exc:
            logger.warning("fault_log_write_failed", path=str(self._path), error=str(exc))
            return False
        return True
