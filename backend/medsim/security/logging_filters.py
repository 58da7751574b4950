"""Logging filters that scrub credentials before records are emitted."""

from __future__ import annotations

import logging
import re

REDACTED = "**REDACTED**"

# each pattern keeps group 1 (the key) and drops the secret value
_PATTERNS = (
    re.compile(r"(Bearer\s+)[\w\.-]+", re.IGNORECASE),
    re.compile(
        r"(\"(?:access_token|pin|password)\"\s*:\s*)(?:\"[^\"]*\"|\d+)",
        re.IGNORECASE,
    ),
    re.compile(r"(\b(?:access_token|pin|password)=)[^&\s]+", re.IGNORECASE),
)


def redact(text: str) -> str:
    for pattern in _PATTERNS:
        text = pattern.sub(rf"\g<1>{REDACTED}", text)
    return text


def _redact_arg(value: object) -> object:
    return redact(value) if isinstance(value, str) else value


class SensitiveFilter(logging.Filter):
    """Redact bearer tokens, PINs and passwords in messages and their arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, dict):
            record.args = {key: _redact_arg(val) for key, val in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(_redact_arg(arg) for arg in record.args)
        return True


__all__ = ["REDACTED", "SensitiveFilter", "redact"]
