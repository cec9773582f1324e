"""PII sanitizer: masks personal data in log output.

Masks e-mail addresses and phone numbers of volunteers in stdout logs.
Account identifiers and permission names are left untouched.
"""

from __future__ import annotations

import re

# Dutch and international phone numbers: +31 6 12345678, 0612345678, +44 7700 900123
_PHONE_RE = re.compile(r"(?<![\w.])(\+\d{2}|0)([\s-]?\d){7,11}(\d{2})\b")

# Email pattern
_EMAIL_RE = re.compile(
    r"\b([a-zA-Z0-9._%+-])([a-zA-Z0-9._%+-]*)@([a-zA-Z0-9.-]+)\.([a-zA-Z]{2,})\b"
)


def sanitize_phone(text: str) -> str:
    """Mask phone numbers: +31612345678 → +31***78."""

    def _mask(m: re.Match[str]) -> str:
        return f"{m.group(1)}***{m.group(3)}"

    return _PHONE_RE.sub(_mask, text)


def sanitize_email(text: str) -> str:
    """Mask emails: user@example.com → u***@***.com."""

    def _mask(m: re.Match[str]) -> str:
        return f"{m.group(1)}***@***.{m.group(4)}"

    return _EMAIL_RE.sub(_mask, text)


def sanitize_pii(text: str) -> str:
    """Sanitize all PII in text for logging."""
    text = sanitize_email(text)
    text = sanitize_phone(text)
    return text
