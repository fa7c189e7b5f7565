from __future__ import annotations

from mcp_log_watch_server.core.models import LogFormat
from mcp_log_watch_server.core.patterns import (
    TRUNCATION_MARKER,
    detect_format,
    extract_error_patterns,
    extract_stack_traces,
    truncate_to_budget,
)


def test_detect_format_json_lines() -> None:
    assert detect_format('{"a":1}\n{"b":2}\n') == LogFormat.JSON


def test_detect_format_plain() -> None:
    assert detect_format("plain text\nmore text\n") == LogFormat.PLAIN


def test_detect_format_empty_is_plain() -> None:
    assert detect_format("") == LogFormat.PLAIN
    assert detect_format("   \n  ") == LogFormat.PLAIN


def test_detect_format_needs_majority_of_sample() -> None:
    assert detect_format('{"a":1}\nplain\n') == LogFormat.PLAIN
    assert detect_format('{"a":1}\n{"b":2}\nplain\n') == LogFormat.JSON


def test_detect_format_samples_first_ten_lines_only() -> None:
    text = "\n".join(['{"n":%d}' % i for i in range(10)] + ["plain"] * 50)
    assert detect_format(text) == LogFormat.JSON


def test_extract_error_patterns_context_window_clipped() -> None:
    text = "\n".join(["a", "b", "c", "ERROR here", "d", "e", "f"])
    matches = extract_error_patterns(text)

    assert len(matches) == 1
    m = matches[0]
    assert m.line_no == 4
    assert (m.start_line, m.end_line) == (2, 6)
    assert m.text == "b\nc\nERROR here\nd\ne"

    first = extract_error_patterns("Fatal at start\nnext")[0]
    assert first.text == "Fatal at start\nnext"
    assert first.keyword == "fatal"


def test_extract_error_patterns_one_match_per_line_in_order() -> None:
    text = "ok\nerror and exception and panic\nPayment FAILED\nstack trace follows\nok"
    matches = extract_error_patterns(text)

    assert [m.line_no for m in matches] == [2, 3, 4]
    assert [m.keyword for m in matches] == ["error", "failed", "stack trace"]


def test_extract_error_patterns_keywords_case_insensitive() -> None:
    for line in ("CRITICAL disk", "kernel Panic", "Failure to bind", "fail fast", "NullPointerException"):
        assert len(extract_error_patterns(line)) == 1, line
    assert extract_error_patterns("INFO ok\nDEBUG fine") == []


def test_extract_stack_traces_deduplicates_in_order() -> None:
    text = "\n".join(
        [
            "Error: boom",
            "    at foo (a.js:1:1)",
            "    at bar (/srv/b.js:20:7)",
            "    at foo (a.js:1:1)",
            "    at /srv/c.js:3:4",
        ]
    )
    assert extract_stack_traces(text) == [
        "at foo (a.js:1:1)",
        "at bar (/srv/b.js:20:7)",
        "at /srv/c.js:3:4",
    ]


def test_extract_stack_traces_none() -> None:
    assert extract_stack_traces("nothing to see here") == []


def test_truncate_to_budget_returns_short_text_unchanged() -> None:
    assert truncate_to_budget("short", 10) == "short"


def test_truncate_to_budget_hard_cut_with_marker() -> None:
    out = truncate_to_budget("x" * 50000, 1000)
    assert len(out) <= 1000 * 4
    assert out.endswith(TRUNCATION_MARKER)


def test_truncate_to_budget_prefers_error_context() -> None:
    noise = ["INFO request ok"] * 400
    lines = noise[:200] + ["ERROR database unavailable"] + noise[200:]
    text = "\n".join(lines)

    out = truncate_to_budget(text, 100)

    assert "ERROR database unavailable" in out
    assert not out.endswith(TRUNCATION_MARKER)
    assert len(out) <= 400


def test_detect_format_rejects_non_standard_constants() -> None:
    assert detect_format("NaN\nInfinity\n-Infinity\n") == LogFormat.PLAIN
    assert detect_format('{"a": NaN}\n{"b": NaN}\n{"c": 1}\n') == LogFormat.PLAIN
