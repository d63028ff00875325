#!/usr/bin/env python3
"""Caller-facing error taxonomy for the guardrail pipeline.

Each error carries a lightweight `.code` so the request handler can map it to
a distinct outcome without string matching on messages.
"""

from __future__ import annotations

from typing import Optional


class GenieError(Exception):
	"""Base class for errors surfaced to callers."""

	code = "UNKNOWN"

	def __init__(self, message: str, code: Optional[str] = None) -> None:
		super().__init__(message)
		if code:
			self.code = code


class InputValidationError(GenieError):
	"""Empty, oversized or malicious caller input."""

	code = "INPUT_VALIDATION"


class ContentModerationError(GenieError):
	"""Caller content was flagged by the moderation classifier."""

	code = "CONTENT_MODERATION"


class RateLimitExceeded(GenieError):
	"""Caller exceeded the per-minute or per-hour quota."""

	code = "RATE_LIMITED"

	def __init__(self, message: str, *, scope: str, retry_after_ms: int) -> None:
		super().__init__(message)
		self.scope = scope
		self.retry_after_ms = retry_after_ms


class UpstreamServiceError(GenieError):
	"""The model call failed, timed out, or returned unusable output."""

	code = "UPSTREAM"
