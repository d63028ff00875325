#!/usr/bin/env python3
"""Phrase patterns associated with instruction-override attempts.

This is a first line of defence only. Rephrased attacks slip through and
legitimate text mentioning a trigger phrase is rejected.
"""

from __future__ import annotations

import re
from typing import List, Optional, Pattern


PROMPT_INJECTION_PATTERNS: List[Pattern[str]] = [
    re.compile(r"ignore\s+(all\s+)?previous\s+instructions?"),
    re.compile(r"disregard\s+(all\s+)?(previous|above|prior)\s+(instructions?|prompts?)"),
    re.compile(r"forget\s+(all\s+)?previous\s+(instructions?|context)"),
    re.compile(r"you\s+are\s+now"),
    re.compile(r"new\s+instructions?:"),
    re.compile(r"system\s+prompt"),
    re.compile(r"override\s+instructions?"),
    re.compile(r"ignore\s+your\s+programming"),
]


def looks_injected(*texts: Optional[str]) -> bool:
    """Return True if the joined, lower-cased texts match any pattern."""
    combined = " ".join(t for t in texts if t).lower()
    if not combined:
        return False
    for pattern in PROMPT_INJECTION_PATTERNS:
        if pattern.search(combined):
            return True
    return False
