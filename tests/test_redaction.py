"""Tests for the sensitive-pattern redactor."""

from __future__ import annotations

import pytest

from utils.issue_models import Issue
from utils.redaction import redact, redact_issue


@pytest.mark.parametrize(
    "text, secret, tag",
    [
        ("login fails with password: hunter2!", "hunter2", "[PASSWORD_REDACTED]"),
        ("set PASSWORD=s3cr3t in env", "s3cr3t", "[PASSWORD_REDACTED]"),
        ("config has api_key=abc-123-def", "abc-123-def", "[API_KEY_REDACTED]"),
        ("the API key: zz-99 leaked", "zz-99", "[API_KEY_REDACTED]"),
        ("refresh token: eyJhbGciOi", "eyJhbGciOi", "[TOKEN_REDACTED]"),
        ("client secret=shh-quiet", "shh-quiet", "[SECRET_REDACTED]"),
        ("header Authorization: Bearer abc.def", "abc", "[BEARER_TOKEN_REDACTED]"),
        ("ping jane.doe@example.com for details", "jane.doe@example.com", "[EMAIL_REDACTED]"),
    ],
)
def test_each_pattern_class_is_replaced(text: str, secret: str, tag: str) -> None:
    out = redact(text)
    assert secret not in out
    assert tag in out


def test_all_occurrences_are_replaced() -> None:
    out = redact("a@b.io and c@d.org")
    assert out == "[EMAIL_REDACTED] and [EMAIL_REDACTED]"


def test_earlier_pattern_wins_on_overlap() -> None:
    # "bearer token xyz": the token pattern runs before the bearer pattern
    out = redact("bearer token xyz")
    assert out == "bearer [TOKEN_REDACTED]"


@pytest.mark.parametrize("value", ["", None])
def test_empty_input_unchanged(value) -> None:
    assert redact(value) == value


def test_clean_text_unchanged() -> None:
    text = "sometimes saving breaks when editing big report"
    assert redact(text) == text


def test_redaction_is_stable_on_its_own_output() -> None:
    once = redact("password: x1 api_key=k2 token=t3 secret=s4 Bearer b5 me@x.io")
    assert redact(once) == once


def test_redact_issue_returns_new_issue() -> None:
    issue = Issue(title="token: abc", body="mail me@x.io", labels=["bug"])
    clean = redact_issue(issue)
    assert clean is not issue
    assert clean.title == "[TOKEN_REDACTED]"
    assert clean.body == "mail [EMAIL_REDACTED]"
    assert clean.labels == ["bug"]
    assert issue.title == "token: abc"
