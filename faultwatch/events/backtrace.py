"""Live call-stack capture and rendering for recoverable faults."""

from __future__ import annotations

import inspect
import sys
from collections.abc import Iterable, Iterator, Mapping
from types import FrameType
from typing import Any

from faultwatch.core.types import BacktraceFrame, CallKind

DEFAULT_MAX_DEPTH = 1000

_THIRD_PARTY_MARKERS = ("site-packages", "dist-packages")

_CALL_SYMBOLS: dict[CallKind, str] = {
    CallKind.INSTANCE: ".",
    CallKind.STATIC: "::",
}

_SCALARS = (str, bytes, int, float, complex, bool, type(None))

_END = object()


# ── Argument summary ────────────────────────────────────────────


def _indent(level: int) -> str:
    # "^" marks each nesting level
    return " " + " ^" * level


def _is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple, set, frozenset))


def _entries(container: Any) -> Iterable[tuple[Any, Any]]:
    if isinstance(container, Mapping):
        return list(container.items())
    return list(enumerate(container))


def _render_scalar(value: Any) -> str:
    if isinstance(value, _SCALARS):
        try:
            return str(value)
        except Exception:
            # e.g. an int past the interpreter's digit limit
            pass
    return f"object type: {type(value).__name__}"


def summarize_arguments(
    arguments: Mapping[Any, Any] | list[Any] | tuple[Any, ...],
    max_level: int = DEFAULT_MAX_DEPTH,
    newline: str = "\n",
) -> str:
    """Render nested call arguments one ``key: value`` entry per line.

    Containers are walked with an explicit stack, so the depth bound
    rather than the interpreter recursion limit decides where the walk
    stops. A container that is already on the current path is printed
    as ``*recursion*`` instead of being entered again.
    """
    parts: list[str] = []
    stack: list[tuple[Iterator[tuple[Any, Any]], int, int]] = [
        (iter(_entries(arguments)), 0, id(arguments))
    ]
    on_path = {id(arguments)}

    while stack:
        items, level, ident = stack[-1]
        entry = next(items, _END)
        if entry is _END:
            stack.pop()
            on_path.discard(ident)
            continue

        key, value = entry
        parts.append(f"{newline}{_indent(level)}{key}: ")
        if _is_container(value):
            if id(value) in on_path:
                parts.append(" *recursion*")
            elif level + 1 > max_level:
                parts.append(" nesting too deep, quitting")
            else:
                stack.append((iter(_entries(value)), level + 1, id(value)))
                on_path.add(id(value))
        else:
            parts.append(_render_scalar(value))

    return "".join(parts)


# ── Capture ─────────────────────────────────────────────────────


def is_third_party(path: str | None) -> bool:
    """Whether a source path belongs to an installed distribution."""
    if not path:
        return False
    return any(marker in path for marker in _THIRD_PARTY_MARKERS)


def _owner_of(frame: FrameType) -> tuple[str | None, CallKind | None]:
    local_vars = frame.f_locals
    code = frame.f_code
    first_arg = code.co_varnames[0] if code.co_argcount else None

    if first_arg == "self" and "self" in local_vars:
        return type(local_vars["self"]).__name__, CallKind.INSTANCE
    if first_arg == "cls" and isinstance(local_vars.get("cls"), type):
        return local_vars["cls"].__name__, CallKind.STATIC

    qualname = getattr(code, "co_qualname", code.co_name)
    head, _, _ = qualname.rpartition(".")
    if head and not head.endswith("<locals>"):
        return head.rpartition(".")[2], CallKind.STATIC
    return None, None


def _arguments_of(frame: FrameType) -> dict[str, Any]:
    info = inspect.getargvalues(frame)
    arguments: dict[str, Any] = {}
    for name in info.args:
        if name in ("self", "cls"):
            continue
        if name in info.locals:
            arguments[name] = info.locals[name]
    if info.varargs and info.varargs in info.locals:
        arguments[f"*{info.varargs}"] = info.locals[info.varargs]
    if info.keywords and info.keywords in info.locals:
        arguments[f"**{info.keywords}"] = info.locals[info.keywords]
    return arguments


def frame_from(frame: FrameType, index: int, max_depth: int = DEFAULT_MAX_DEPTH) -> BacktraceFrame:
    """Snapshot one live frame into a BacktraceFrame."""
    code = frame.f_code
    if code.co_name == "<module>":
        return BacktraceFrame(index=index, file=code.co_filename, line=frame.f_lineno)

    owner, call_kind = _owner_of(frame)
    return BacktraceFrame(
        index=index,
        file=code.co_filename,
        line=frame.f_lineno,
        owner=owner,
        call_kind=call_kind,
        function=code.co_name,
        arguments=summarize_arguments(_arguments_of(frame), max_level=max_depth),
    )


def capture_backtrace(
    skip: int = 2,
    skip_modules: Iterable[str] = (),
    hide_third_party: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> tuple[BacktraceFrame, ...]:
    """Capture the current call stack, innermost first.

    Args:
        skip: Frames above this call to drop (the monitor's own frames).
        skip_modules: Module names whose frames are dropped while they are
            still the innermost remaining frames.
        hide_third_party: Leave out frames from installed distributions.
        max_depth: Nesting bound for argument summaries.
    """
    frame: FrameType | None = sys._getframe(1)
    for _ in range(skip):
        if frame is None:
            break
        frame = frame.f_back

    modules = frozenset(skip_modules)
    while frame is not None and frame.f_globals.get("__name__") in modules:
        frame = frame.f_back

    frames: list[BacktraceFrame] = []
    index = 0
    while frame is not None:
        if not (hide_third_party and is_third_party(frame.f_code.co_filename)):
            frames.append(frame_from(frame, index, max_depth))
        index += 1
        frame = frame.f_back
    return tuple(frames)


# ── Rendering ───────────────────────────────────────────────────


def render_frame(frame: BacktraceFrame) -> str:
    """One index-prefixed backtrace line. Missing fields are left out."""
    out = f"#{frame.index}:"
    if frame.file:
        out += f" {frame.file}"
    if frame.line is not None:
        out += f" [{frame.line}]"
    if frame.owner:
        owner = frame.owner.rpartition(".")[2]
        symbol = _CALL_SYMBOLS.get(frame.call_kind, ".")
        out += f" {owner}{symbol}"
        if frame.function:
            out += f"{frame.function}()"
    elif frame.function:
        out += f" {frame.function}()"
    if frame.arguments is not None:
        out += f" {{{frame.arguments}}}"
    return out


def render_backtrace(frames: Iterable[BacktraceFrame]) -> str:
    """Render a captured backtrace, one line per frame."""
    return "\n".join(render_frame(f) for f in frames)
