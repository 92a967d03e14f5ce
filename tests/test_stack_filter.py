"""Tests for filtering rendered stack traces."""

from __future__ import annotations

import json
import re

import pytest

from stackwrap.errors import MalformedTraceError, PatternError, stack_trace_of, wrap_with_stack
from stackwrap.stack import capture_stack
from stackwrap.stack_filter import (
    DEFAULT_EXCLUDE,
    StackTraceFilter,
    format_json,
    format_plain,
)

RAW_STACK = "pkg.Foo\n\t/src/app/foo.py:10\npkg.Bar\n\t/src/app/bar.py:20\n"

WITH_OWN_FRAMES = (
    "stackwrap.errors.wrap_with_stack\n"
    "\t/venv/lib/site-packages/stackwrap/errors.py:141\n"
    "app.handlers.create_user\n"
    "\t/srv/app/handlers.py:27\n"
    "stackwrap.stack_filter.StackTraceFilter.filter\n"
    "\t/venv/lib/site-packages/stackwrap/stack_filter.py:88\n"
    "app.main.<module>\n"
    "\t/srv/app/main.py:3\n"
)


def test_filter_keeps_frames_matching_a_base_pattern() -> None:
    stack_filter = StackTraceFilter([r"foo\.py"])

    assert stack_filter.filter(RAW_STACK, "plain") == "fn:Foo (/src/app/foo.py:10)"


def test_empty_base_patterns_match_everything() -> None:
    expected = "fn:Foo (/src/app/foo.py:10)\nfn:Bar (/src/app/bar.py:20)"

    assert StackTraceFilter([]).filter(RAW_STACK) == expected
    assert StackTraceFilter().filter(RAW_STACK) == expected
    assert StackTraceFilter([".*"]).filter(RAW_STACK) == expected


def test_builtin_excludes_override_base_patterns() -> None:
    stack_filter = StackTraceFilter([r".*\.py"])

    report = stack_filter.filter(WITH_OWN_FRAMES)

    assert report == "fn:create_user (/srv/app/handlers.py:27)\nfn:<module> (/srv/app/main.py:3)"
    assert "stackwrap/" not in report


def test_builtin_excludes_are_kept_alongside_user_excludes() -> None:
    stack_filter = StackTraceFilter(exclude_patterns=[r"main\.py"])

    report = stack_filter.filter(WITH_OWN_FRAMES)

    assert report == "fn:create_user (/srv/app/handlers.py:27)"
    assert [p.pattern for p in stack_filter.exclude_patterns] == [r"main\.py", *DEFAULT_EXCLUDE]


def test_patterns_match_location_not_function_name() -> None:
    stack_filter = StackTraceFilter(["Foo"])

    assert stack_filter.filter(RAW_STACK) == ""


def test_unpaired_trailing_line_is_ignored() -> None:
    raw = "pkg.Foo\n\t/src/app/foo.py:10\npkg.Orphan"

    assert StackTraceFilter().filter(raw) == "fn:Foo (/src/app/foo.py:10)"


def test_json_output_is_indented_array() -> None:
    report = StackTraceFilter().filter(RAW_STACK, "json")

    assert json.loads(report) == [
        {"function": "Foo", "file": "/src/app/foo.py:10"},
        {"function": "Bar", "file": "/src/app/bar.py:20"},
    ]
    assert report.splitlines()[1] == "  {"


def test_json_output_for_no_frames_is_empty_array() -> None:
    assert StackTraceFilter(["nothing-matches"]).filter(RAW_STACK, "json") == "[]"


def test_json_function_is_trailing_identifier() -> None:
    raw = "pkg/mod.Receiver.Method\n\t/src/mod/receiver.py:42\n"

    report = json.loads(StackTraceFilter().filter(raw, "json"))

    assert report == [{"function": "Method", "file": "/src/mod/receiver.py:42"}]


def test_unknown_format_falls_back_to_plain() -> None:
    stack_filter = StackTraceFilter([r"foo\.py"])

    assert stack_filter.filter(RAW_STACK, "yaml") == stack_filter.filter(RAW_STACK, "plain")


def test_added_patterns_take_effect() -> None:
    stack_filter = StackTraceFilter(["no-such-file"])
    assert stack_filter.filter(RAW_STACK) == ""

    stack_filter.add_base_path(r"bar\.py")
    assert stack_filter.filter(RAW_STACK) == "fn:Bar (/src/app/bar.py:20)"

    stack_filter.add_exclude_path(r"/app/")
    assert stack_filter.filter(RAW_STACK) == ""


def test_invalid_patterns_fail_at_registration() -> None:
    with pytest.raises(PatternError) as excinfo:
        StackTraceFilter(["("])
    assert excinfo.value.pattern == "("
    assert isinstance(excinfo.value.__cause__, re.error)

    with pytest.raises(PatternError):
        StackTraceFilter(exclude_patterns=["[a-"])

    stack_filter = StackTraceFilter()
    with pytest.raises(ValueError):
        stack_filter.add_base_path("(")
    with pytest.raises(ValueError):
        stack_filter.add_exclude_path("*")
    assert len(stack_filter.base_patterns) == 1
    assert len(stack_filter.exclude_patterns) == len(DEFAULT_EXCLUDE)


def test_membership_helpers() -> None:
    stack_filter = StackTraceFilter([r"/srv/app/"])

    assert stack_filter.is_in_base_paths("/srv/app/main.py:3")
    assert not stack_filter.is_in_base_paths("/usr/lib/python3/json/decoder.py:10")
    assert stack_filter.is_in_exclude_paths("/venv/stackwrap/errors.py:141")
    assert not stack_filter.is_in_exclude_paths("/srv/app/errors.py:9")


def test_filter_only_base_path_truncates_locations() -> None:
    raw = (
        "app.handlers.create_user\n"
        "\t/home/ci/build/srv/app/handlers.py:27\n"
        "app.main.run\n"
        "\t/home/ci/build/srv/app/main.py:3\n"
    )

    report = StackTraceFilter().filter_only_base_path("srv/app/", raw, "plain")

    assert report == "fn:create_user (srv/app/handlers.py:27)\nfn:run (srv/app/main.py:3)"


def test_filter_only_base_path_json_has_no_leading_empty_entries() -> None:
    raw = "app.Foo\n\t/root/src/app/foo.py:10\napp.Bar\n\t/root/src/app/bar.py:20\n"

    report = json.loads(StackTraceFilter().filter_only_base_path("src/", raw, "json"))

    assert report == [
        {"function": "Foo", "file": "src/app/foo.py:10"},
        {"function": "Bar", "file": "src/app/bar.py:20"},
    ]


def test_filter_only_base_path_passes_unmatched_locations_through() -> None:
    report = StackTraceFilter().filter_only_base_path("/elsewhere/", RAW_STACK)

    assert report == StackTraceFilter().filter(RAW_STACK)


def test_plain_encoder_degrades_on_malformed_record() -> None:
    assert format_plain(["pkg.Foo (/src/foo.py:1)", "malformed"]) == ""
    assert format_plain(["pkg.Foo (/src/foo.py:1)", ""]) == "fn:Foo (/src/foo.py:1)"


def test_json_encoder_rejects_malformed_record() -> None:
    with pytest.raises(MalformedTraceError) as excinfo:
        format_json(["pkg.Foo (/src/foo.py:1)", "malformed"])

    assert excinfo.value.record == "malformed"
    assert isinstance(excinfo.value, ValueError)


def test_locations_with_spaces_stay_whole() -> None:
    raw = "app.Foo\n\t/Users/me/My Project/foo.py:4\n"

    assert StackTraceFilter().filter(raw) == "fn:Foo (/Users/me/My Project/foo.py:4)"


def test_filters_a_captured_error_stack() -> None:
    err = wrap_with_stack(RuntimeError("boom"))
    stack_filter = StackTraceFilter([re.escape(__file__)])

    lines = stack_filter.filter(str(err.stack_trace())).splitlines()

    assert lines == [f"fn:test_filters_a_captured_error_stack ({__file__}:{err.stack_trace()[0].line()})"]


def test_both_stack_renderings_filter_alike() -> None:
    trace = capture_stack()
    stack_filter = StackTraceFilter([re.escape(__file__)])
    expected = f"fn:test_both_stack_renderings_filter_alike ({__file__}:{trace[0].line()})"

    assert stack_filter.filter(str(trace)) == expected
    assert stack_filter.filter(format(trace, "+v")) == expected


def test_error_stack_is_filtered_through_stack_trace_of() -> None:
    err = wrap_with_stack(KeyError("user"))
    stack_filter = StackTraceFilter([re.escape(__file__)])

    report = json.loads(stack_filter.filter(str(stack_trace_of(err)), "json"))

    assert report == [
        {
            "function": "test_error_stack_is_filtered_through_stack_trace_of",
            "file": f"{__file__}:{err.stack_trace()[0].line()}",
        }
    ]


def test_identifier_is_text_after_last_dot() -> None:
    assert format_plain(["a.b/c (/src/x.py:1)"]) == "fn:b/c (/src/x.py:1)"
    assert json.loads(format_json(["pkg/mod.Receiver.Method (/src/x.py:1)"])) == [
        {"function": "Method", "file": "/src/x.py:1"},
    ]
