#!/usr/bin/env python3
from __future__ import annotations

import logging
from typing import Any, Dict

from pydantic import ValidationError

from configs.config import Config
from utils.errors import InputValidationError
from utils.injection import looks_injected
from utils.issue_models import Issue
from utils.release_notes_models import ReleaseNotesInput

logger = logging.getLogger(__name__)


def parse_issue_payload(payload: Any) -> Issue:
	"""Build an Issue from caller JSON, mapping shape errors to InputValidationError."""
	if not isinstance(payload, dict):
		raise InputValidationError('Request body must contain an "issue" object')
	if not payload.get("title") or not payload.get("body"):
		raise InputValidationError('Issue must have both "title" and "body" fields')
	try:
		return Issue.model_validate(payload)
	except ValidationError as e:
		raise InputValidationError(f"Invalid issue: {_first_error(e)}")


def parse_release_notes_payload(payload: Any) -> ReleaseNotesInput:
	if not isinstance(payload, dict):
		raise InputValidationError('Request body must contain an "input" object')
	if not isinstance(payload.get("pullRequests", payload.get("pull_requests")), list):
		raise InputValidationError('Input must contain a "pullRequests" array')
	try:
		return ReleaseNotesInput.model_validate(payload)
	except ValidationError as e:
		raise InputValidationError(f"Invalid release notes input: {_first_error(e)}")


def _first_error(e: ValidationError) -> str:
	errors = e.errors()
	if not errors:
		return "invalid"
	first: Dict[str, Any] = errors[0]
	loc = ".".join(str(p) for p in first.get("loc", ()))
	# Never echo the offending value back; it is caller text
	return f"{loc}: {first.get('msg', 'invalid')}"


def validate_issue_input(issue: Issue) -> None:
	"""Reject empty, oversized or malicious issues before any external call."""
	if not issue.title or not issue.title.strip():
		raise InputValidationError("Issue title cannot be empty")
	if not issue.body or not issue.body.strip():
		raise InputValidationError("Issue body cannot be empty")
	if len(issue.title) > Config.MAX_INPUT_TITLE_LENGTH:
		raise InputValidationError(f"Issue title too long (max {Config.MAX_INPUT_TITLE_LENGTH} characters)")
	if len(issue.body) > Config.MAX_INPUT_BODY_LENGTH:
		raise InputValidationError(f"Issue body too long (max {Config.MAX_INPUT_BODY_LENGTH} characters)")
	if looks_injected(issue.title, issue.body):
		logger.warning("Potential prompt injection attempt detected in input")
		raise InputValidationError("Input contains potentially malicious content")


def validate_release_notes_input(data: ReleaseNotesInput) -> None:
	count = len(data.pull_requests or [])
	if count == 0:
		raise InputValidationError("At least one pull request is required")
	if count > Config.MAX_PULL_REQUESTS:
		raise InputValidationError(
			f"Too many pull requests (max {Config.MAX_PULL_REQUESTS}). Please use a shorter date range."
		)
