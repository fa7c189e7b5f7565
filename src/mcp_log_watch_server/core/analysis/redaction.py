"""Scrub credentials and personal data before log text leaves the process."""

from __future__ import annotations

import re

_SECRET_KV_RE = re.compile(r"(?i)\b(api[_-]?key|token|password|passwd|secret)(\s*[:=]\s*)([^\s,;\"']+)")
_BEARER_RE = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")
_AWS_KEY_RE = re.compile(r"\bAKIA[0-9A-Z]{16}\b")
_EMAIL_RE = re.compile(r"(?i)\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b")
_IPV4_RE = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")
_JWT_RE = re.compile(r"\beyJ[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]{10,}\.[a-zA-Z0-9_-]{10,}\b")
_LONG_TOKEN_RE = re.compile(r"\b[a-zA-Z0-9_\-]{32,}\b")


def redact_text(text: str) -> str:
    """Replace secrets, emails and addresses with placeholders.

    Stack frames (``file.js:12:5``) are left alone.
    """
    text = _JWT_RE.sub("<REDACTED_JWT>", text)
    text = _BEARER_RE.sub("Bearer <REDACTED_SECRET>", text)
    text = _SECRET_KV_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}<REDACTED_SECRET>", text)
    text = _AWS_KEY_RE.sub("<REDACTED_AWS_KEY>", text)
    text = _EMAIL_RE.sub("<REDACTED_EMAIL>", text)
    text = _IPV4_RE.sub("<REDACTED_IP>", text)
    text = _LONG_TOKEN_RE.sub("<REDACTED_TOKEN>", text)
    return text
