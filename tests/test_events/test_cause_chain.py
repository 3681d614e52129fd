"""Tests for "Caused by" chain flattening and rendering."""

from __future__ import annotations

import pytest

from faultwatch.core.types import CallSite, CauseLink
from faultwatch.events.cause_chain import (
    format_cause_chain,
    format_exception_chain,
    format_link,
    links_from_exception,
)


def _site(line: int, function: str | None = "run", owner: str | None = "Job") -> CallSite:
    return CallSite(owner=owner, function=function, file="/srv/app/job.py", line=line)


def _fail() -> None:
    raise ValueError("bad input")


def _wrap() -> None:
    try:
        _fail()
    except ValueError as exc:
        raise RuntimeError("wrapped") from exc


# ── Formatting ──────────────────────────────────────────────────


class TestFormatLink:
    def test_first_link(self) -> None:
        link = CauseLink(type_name="KeyError", message="'id'", frames=(_site(10), _site(20)))
        lines = format_link(link, set())
        assert lines == [
            "KeyError: 'id'",
            " at Job.run(job.py:10)",
            " at Job.run(job.py:20)",
        ]

    def test_caused_by_prefix(self) -> None:
        link = CauseLink(type_name="OSError", message="disk", frames=(_site(1),))
        assert format_link(link, set(), caused_by=True)[0] == "Caused by: OSError: disk"

    def test_main_marker(self) -> None:
        link = CauseLink(type_name="E", message="m", frames=(_site(3, function=None, owner=None),))
        assert format_link(link, set())[1] == " at (main)(job.py:3)"

    def test_function_without_owner(self) -> None:
        link = CauseLink(type_name="E", message="m", frames=(_site(3, owner=None),))
        assert format_link(link, set())[1] == " at run(job.py:3)"

    def test_locals_stripped_from_owner(self) -> None:
        site = _site(3, function="inner", owner="outer.<locals>")
        link = CauseLink(type_name="E", message="m", frames=(site,))
        assert format_link(link, set())[1] == " at outer.inner(job.py:3)"

    def test_unknown_line_shows_full_path(self) -> None:
        site = CallSite(owner="Job", function="run", file="/srv/app/job.py", line=None)
        link = CauseLink(type_name="E", message="m", frames=(site,))
        assert format_link(link, set())[1] == " at Job.run(/srv/app/job.py)"

    def test_unknown_source(self) -> None:
        link = CauseLink(type_name="E", message="m", frames=(CallSite(function="run"),))
        assert format_link(link, set())[1] == " at run(Unknown Source)"

    def test_link_without_frames_uses_own_position(self) -> None:
        link = CauseLink(type_name="E", message="m", file="/srv/app/job.py", line=7)
        assert format_link(link, set())[1] == " at (main)(job.py:7)"


class TestFormatCauseChain:
    def test_repeated_position_ends_link_once(self) -> None:
        outer = CauseLink(type_name="RuntimeError", message="outer", frames=(_site(1), _site(2), _site(3)))
        inner = CauseLink(type_name="ValueError", message="inner", frames=(_site(9), _site(2), _site(3)))
        text = format_cause_chain([outer, inner])
        assert text.splitlines() == [
            "RuntimeError: outer",
            " at Job.run(job.py:1)",
            " at Job.run(job.py:2)",
            " at Job.run(job.py:3)",
            "Caused by: ValueError: inner",
            " at Job.run(job.py:9)",
            " ... 2 more",
        ]

    def test_each_repeating_link_ends_with_one_more_line(self) -> None:
        sites = (_site(1), _site(2))
        links = [
            CauseLink(type_name="A", message="a", frames=sites),
            CauseLink(type_name="B", message="b", frames=sites),
            CauseLink(type_name="A", message="a", frames=sites),
        ]
        text = format_cause_chain(links)
        assert sum(1 for line in text.splitlines() if line.endswith(" more")) == 2
        assert text.splitlines()[4] == " ... 2 more"

    def test_single_link_no_more(self) -> None:
        text = format_cause_chain([CauseLink(type_name="E", message="m", frames=(_site(1),))])
        assert "more" not in text


# ── Live exceptions ─────────────────────────────────────────────


class TestLinksFromException:
    def test_explicit_cause(self) -> None:
        with pytest.raises(RuntimeError) as info:
            _wrap()
        links = links_from_exception(info.value)
        assert [link.type_name for link in links] == ["RuntimeError", "ValueError"]
        assert links[1].frames[0].function == "_fail"
        assert links[1].file == __file__

    def test_implicit_context(self) -> None:
        try:
            try:
                raise KeyError("k")
            except KeyError:
                raise TypeError("t")  # noqa: B904
        except TypeError as exc:
            links = links_from_exception(exc)
        assert [link.type_name for link in links] == ["TypeError", "KeyError"]

    def test_suppressed_context(self) -> None:
        try:
            try:
                raise KeyError("k")
            except KeyError:
                raise TypeError("t") from None
        except TypeError as exc:
            links = links_from_exception(exc)
        assert len(links) == 1

    def test_cyclic_causes_terminate(self) -> None:
        first = ValueError("first")
        second = ValueError("second")
        first.__cause__ = second
        second.__cause__ = first
        links = links_from_exception(first)
        assert [link.message for link in links] == ["first", "second"]

    def test_exception_never_raised(self) -> None:
        links = links_from_exception(ValueError("never raised"))
        assert links[0].frames == ()
        assert links[0].file is None

    def test_rendered_chain(self) -> None:
        with pytest.raises(RuntimeError) as info:
            _wrap()
        text = format_exception_chain(info.value)
        assert text.startswith("RuntimeError: wrapped\n at _wrap(test_cause_chain.py:")
        assert "\nCaused by: ValueError: bad input\n at _fail(test_cause_chain.py:" in text
