"""Text heuristics used to decide what is worth analyzing.

Everything here is a pure function over already-decoded text:

- format sniffing (JSON lines vs plain text),
- keyword-based error extraction with small context windows,
- stack frame extraction,
- a character budget that prefers error context over an arbitrary prefix.
"""

from __future__ import annotations

import json
import re

from .models import ContextMatch, LogFormat

ERROR_KEYWORDS: tuple[str, ...] = (
    "error",
    "exception",
    "fail",
    "failed",
    "failure",
    "fatal",
    "critical",
    "panic",
    "stack trace",
)

CHARS_PER_TOKEN = 4
DEFAULT_MAX_TOKENS = 8000
CONTEXT_BEFORE = 2
CONTEXT_AFTER = 2
FORMAT_SAMPLE_LINES = 10
SECTION_SEPARATOR = "\n---\n"
TRUNCATION_MARKER = "\n\n... [truncated] ..."
_TRUNCATION_HEADROOM = 100

# "fail" already covers "failed"/"failure"; longer alternatives first so the
# reported keyword is the most specific one.
_ERROR_RE = re.compile(
    r"stack trace|exception|failure|failed|fail|fatal|critical|panic|error",
    re.IGNORECASE,
)
_STACK_FRAME_RE = re.compile(r"\bat\s+.+\(.+:\d+:\d+\)|\bat\s+.+:\d+:\d+")


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not a JSON value")


def detect_format(text: str) -> LogFormat:
    """Guess whether the text is JSON lines or plain text."""
    stripped = text.strip()
    if not stripped:
        return LogFormat.PLAIN

    sample = stripped.split("\n")[:FORMAT_SAMPLE_LINES]
    json_lines = 0
    for line in sample:
        try:
            json.loads(line.strip(), parse_constant=_reject_constant)
        except ValueError:
            continue
        json_lines += 1

    return LogFormat.JSON if json_lines > len(sample) / 2 else LogFormat.PLAIN


def extract_error_patterns(text: str) -> list[ContextMatch]:
    """Return a context window for every error-like line, in line order."""
    lines = text.split("\n")
    out: list[ContextMatch] = []

    for i, line in enumerate(lines):
        m = _ERROR_RE.search(line)
        if m is None:
            continue
        start = max(0, i - CONTEXT_BEFORE)
        end = min(len(lines), i + CONTEXT_AFTER + 1)
        out.append(
            ContextMatch(
                line_no=i + 1,
                start_line=start + 1,
                end_line=end,
                keyword=m.group(0).lower(),
                text="\n".join(lines[start:end]),
            )
        )

    return out


def extract_stack_traces(text: str) -> list[str]:
    """Return unique stack frames (``at fn (file:line:col)``) in first-seen order."""
    return list(dict.fromkeys(m.group(0) for m in _STACK_FRAME_RE.finditer(text)))


def truncate_to_budget(text: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
    """Fit text into roughly ``max_tokens`` tokens (4 chars per token).

    Error context windows are preferred; if even those do not fit, the text is
    cut and an explicit truncation marker is appended.
    """
    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) <= max_chars:
        return text

    sections = extract_error_patterns(text)
    if sections:
        combined = SECTION_SEPARATOR.join(s.text for s in sections)
        if len(combined) <= max_chars:
            return combined

    return text[: max(0, max_chars - _TRUNCATION_HEADROOM)] + TRUNCATION_MARKER
