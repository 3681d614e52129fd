"""Ambient opt-out: faults raised inside ``suppress_faults()`` are not reported."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_suppressed: ContextVar[bool] = ContextVar("faultwatch_suppressed", default=False)


def faults_suppressed() -> bool:
    """Whether fault reporting is switched off for the current context."""
    return _suppressed.get()


@contextmanager
def suppress_faults() -> Iterator[None]:
    """Silence fault reporting for the enclosed block.

    Usage::

        with suppress_faults():
            legacy_call_that_warns()
    """
    token = _suppressed.set(True)
    try:
        yield
    finally:
        _suppressed.reset(token)
