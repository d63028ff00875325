#!/usr/bin/env python3
"""Regex scrubber for credential-like substrings and email addresses.

Patterns run in a fixed order over the whole string. An earlier pattern
consumes its match before later patterns see the text, so overlapping
matches always resolve the same way.
"""

from __future__ import annotations

import re
from typing import List, Optional, Pattern, Tuple

from utils.issue_models import Issue


FORBIDDEN_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"password(?!_REDACTED)[:\s=]*[\w!@#$%^&*()]+", re.IGNORECASE), "[PASSWORD_REDACTED]"),
    (re.compile(r"api[_\s]?key(?!_REDACTED)[:\s=]*[\w-]+", re.IGNORECASE), "[API_KEY_REDACTED]"),
    (re.compile(r"token(?!_REDACTED)[:\s=]*[\w-]+", re.IGNORECASE), "[TOKEN_REDACTED]"),
    (re.compile(r"secret(?!_REDACTED)[:\s=]*[\w-]+", re.IGNORECASE), "[SECRET_REDACTED]"),
    (re.compile(r"bearer\s+[\w-]+", re.IGNORECASE), "[BEARER_TOKEN_REDACTED]"),
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", re.IGNORECASE), "[EMAIL_REDACTED]"),
]


def redact(text: Optional[str]) -> Optional[str]:
    """Replace every sensitive match with its placeholder tag.

    Empty or None input is returned unchanged.
    """
    if not text:
        return text
    sanitized = text
    for pattern, replacement in FORBIDDEN_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def redact_issue(issue: Issue) -> Issue:
    return issue.with_text(redact(issue.title), redact(issue.body))
