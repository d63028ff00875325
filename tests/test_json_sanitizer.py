"""Tests for parsing untrusted model text into a JSON record."""

from __future__ import annotations

import pytest

from utils.json_sanitizer import extract_json_objects, parse_json_object


def test_plain_object_parses() -> None:
    result = parse_json_object('{"title": "t", "labels": ["a"]}')
    assert result.ok
    assert result.value == {"title": "t", "labels": ["a"]}
    assert result.code == "OK"


@pytest.mark.parametrize("raw", [None, "", "   \n"])
def test_empty_response(raw) -> None:
    result = parse_json_object(raw)
    assert not result.ok and result.code == "EMPTY"


@pytest.mark.parametrize("raw", ['["a", "b"]', '"just a string"', "42", "null"])
def test_non_object_is_structure_failure(raw) -> None:
    result = parse_json_object(raw)
    assert not result.ok and result.code == "STRUCTURE"


def test_malformed_text_fails_without_repair() -> None:
    result = parse_json_object('Sure! ```json\n{"title": "t",}\n```', allow_repair=False)
    assert not result.ok
    assert result.code == "JSON_DECODE"
    assert result.value is None


def test_repair_recovers_fenced_object_with_trailing_comma() -> None:
    result = parse_json_object('Sure! ```json\n{"title": "t", "labels": ["a",],}\n```', allow_repair=True)
    assert result.ok
    assert result.value == {"title": "t", "labels": ["a"]}


def test_repair_never_invents_content() -> None:
    result = parse_json_object("no braces anywhere", allow_repair=True)
    assert not result.ok and result.code == "JSON_DECODE"


def test_extract_prefers_largest_region() -> None:
    cands = extract_json_objects('x {"a": {"b": 1}} y')
    assert cands[0] == '{"a": {"b": 1}}'
    assert extract_json_objects("") == []
