"""Facts about the execution environment a fault happened in."""

from __future__ import annotations

import socket
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Timezone-aware wall clock in the local zone."""
    return datetime.now().astimezone()


@dataclass(frozen=True)
class HostEnvironment:
    """Execution mode plus request or invocation details.

    ``interactive`` is True while serving a request; batch runs (scripts,
    workers, CLIs) are not interactive.
    """

    interactive: bool = False
    hostname: str = ""
    method: str = ""
    request_uri: str = ""
    program: str = ""
    clock: Clock = field(default=local_now, compare=False, repr=False)

    @classmethod
    def batch(cls, program: str | None = None, clock: Clock = local_now) -> HostEnvironment:
        """Environment for a command-line / batch process."""
        return cls(
            interactive=False,
            hostname=socket.gethostname(),
            program=program if program is not None else (sys.argv[0] if sys.argv else ""),
            clock=clock,
        )

    @classmethod
    def for_request(
        cls,
        hostname: str,
        method: str,
        request_uri: str,
        clock: Clock = local_now,
    ) -> HostEnvironment:
        """Environment for a request being served. ``request_uri`` includes the query."""
        return cls(
            interactive=True,
            hostname=hostname,
            method=method,
            request_uri=request_uri,
            clock=clock,
        )

    def now(self) -> datetime:
        return self.clock()

    def describe(self) -> str:
        """Header text identifying where the fault occurred."""
        if self.interactive:
            return f"{self.hostname} {self.method} {self.request_uri}"
        return f"Command line: {self.program}"
