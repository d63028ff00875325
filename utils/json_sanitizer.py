#!/usr/bin/env python3
"""Parse untrusted model text into a JSON record.

The result is a tagged `ParseResult` instead of an exception so the
untrusted-data boundary stays explicit at every call site.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from configs.config import Config


@dataclass
class ParseResult:
	ok: bool
	value: Optional[Any] = None
	code: str = "OK"
	error: str = ""

	@classmethod
	def success(cls, value: Any) -> "ParseResult":
		return cls(True, value)

	@classmethod
	def failure(cls, code: str, error: str) -> "ParseResult":
		return cls(False, None, code, error)


# --- Private helpers ---

def _strip_fences(text: str) -> str:
	return re.sub(r"```[a-zA-Z]*\n|```", "", text)


def _remove_control_chars(text: str) -> str:
	return re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F]", " ", text)


def _largest_braced_region(text: str) -> str | None:
	stack: List[int] = []
	best = None
	best_len = 0
	for i, ch in enumerate(text):
		if ch == '{':
			stack.append(i)
		elif ch == '}' and stack:
			start = stack.pop()
			cand = text[start:i+1]
			if len(cand) > best_len:
				best = cand
				best_len = len(cand)
	return best


def _fix_trailing_commas(s: str) -> str:
	return re.sub(r",\s*([}\]])", r"\1", s)


# --- Public API ---

def extract_json_objects(raw_text: str) -> List[str]:
	"""Return candidate JSON object strings found in raw_text, most-likely first."""
	if not raw_text:
		return []
	text = _remove_control_chars(_strip_fences(raw_text))
	cands: List[str] = []
	largest = _largest_braced_region(text)
	if largest:
		cands.append(largest)
	first = text.find('{')
	last = text.rfind('}')
	if first != -1 and last != -1 and last > first:
		frag = text[first:last+1]
		if frag not in cands:
			cands.append(frag)
	return cands


def parse_json_object(raw_text: Optional[str], *, allow_repair: Optional[bool] = None) -> ParseResult:
	"""Parse raw_text as a single JSON object.

	With repair enabled, fenced or chatty output is scanned for braced
	regions and trailing commas are dropped; nothing is ever invented.
	"""
	if raw_text is None or not str(raw_text).strip():
		return ParseResult.failure("EMPTY", "Empty model response")
	repair = Config.ALLOW_JSON_REPAIR if allow_repair is None else allow_repair
	try:
		data = json.loads(raw_text)
	except json.JSONDecodeError as e:
		if not repair:
			return ParseResult.failure("JSON_DECODE", str(e))
		data = None
		last_error: str = str(e)
		for cand in extract_json_objects(raw_text):
			try:
				data = json.loads(_fix_trailing_commas(cand).strip())
				break
			except json.JSONDecodeError as e2:
				last_error = str(e2)
		if data is None:
			return ParseResult.failure("JSON_DECODE", last_error)
	if not isinstance(data, dict):
		return ParseResult.failure("STRUCTURE", f"Expected a JSON object, got {type(data).__name__}")
	return ParseResult.success(data)

