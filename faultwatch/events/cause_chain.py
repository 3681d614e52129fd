"""Rendering of exception chains as "Caused by" blocks."""

from __future__ import annotations

import os
import traceback
from collections.abc import Iterable

from faultwatch.core.types import CallSite, CauseLink

MAIN_MARKER = "(main)"
UNKNOWN_SOURCE = "Unknown Source"


# ── Exception → links ───────────────────────────────────────────


def _call_sites(exc: BaseException) -> tuple[CallSite, ...]:
    """Call sites of an exception's own traceback, innermost first."""
    sites: list[CallSite] = []
    for frame, lineno in traceback.walk_tb(exc.__traceback__):
        code = frame.f_code
        qualname = getattr(code, "co_qualname", code.co_name)
        owner, _, function = qualname.rpartition(".")
        if function == "<module>":
            owner, function = "", ""
        sites.append(
            CallSite(
                owner=owner or None,
                function=function or None,
                file=code.co_filename,
                line=lineno,
            )
        )
    sites.reverse()
    return tuple(sites)


def _underlying(exc: BaseException) -> BaseException | None:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def links_from_exception(exc: BaseException) -> tuple[CauseLink, ...]:
    """Flatten an exception and its causes into links, outermost first.

    Stops at the first exception object that has already been visited.
    """
    links: list[CauseLink] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        sites = _call_sites(current)
        innermost = sites[0] if sites else CallSite()
        links.append(
            CauseLink(
                type_name=type(current).__qualname__,
                message=str(current),
                file=innermost.file,
                line=innermost.line,
                frames=sites,
            )
        )
        current = _underlying(current)
    return tuple(links)


# ── Formatting ──────────────────────────────────────────────────


def _site_key(site: CallSite) -> str:
    return f"{site.file}:{site.line}"


def _site_line(site: CallSite) -> str:
    if site.function:
        owner = site.owner.replace(".<locals>", "") if site.owner else ""
        where = f"{owner}.{site.function}" if owner else site.function
    else:
        where = MAIN_MARKER

    if site.line is None:
        location = site.file or UNKNOWN_SOURCE
    else:
        location = f"{os.path.basename(site.file or UNKNOWN_SOURCE)}:{site.line}"
    return f" at {where}({location})"


def format_link(link: CauseLink, seen: set[str], caused_by: bool = False) -> list[str]:
    """Render one link, adding its positions to *seen*.

    The first position already present in *seen* ends the link with a
    single ``... N more`` line.
    """
    starter = "Caused by: " if caused_by else ""
    lines = [f"{starter}{link.type_name}: {link.message}"]

    sites = link.frames or (CallSite(file=link.file, line=link.line),)
    for i, site in enumerate(sites):
        key = _site_key(site)
        if key in seen:
            lines.append(f" ... {len(sites) - i} more")
            break
        lines.append(_site_line(site))
        seen.add(key)
    return lines


def format_cause_chain(links: Iterable[CauseLink]) -> str:
    """Render a chain of links outer-to-inner, sharing one seen-set."""
    seen: set[str] = set()
    lines: list[str] = []
    for i, link in enumerate(links):
        lines.extend(format_link(link, seen, caused_by=i > 0))
    return "\n".join(lines)


def format_exception_chain(exc: BaseException) -> str:
    """Shortcut: flatten and render a live exception."""
    return format_cause_chain(links_from_exception(exc))
