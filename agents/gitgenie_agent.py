#!/usr/bin/env python3
"""GitGenie agent: guardrailed issue improvement and release notes generation.

Each operation is a linear pipeline around a single model call. Input is
validated, moderated and redacted before the call; the model's JSON is parsed
and reconciled after it. Validation and moderation failures reach the caller
with their specific messages, everything else collapses into one generic
service failure.
"""

import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from langsmith.run_helpers import traceable

from clients.openai_client import ChatCompletion, OpenAIClient
from configs.config import Config
from utils.errors import ContentModerationError, InputValidationError, UpstreamServiceError
from utils.issue_models import Issue
from utils.json_sanitizer import parse_json_object
from utils.metrics import Timer, incr
from utils.moderation import ContentModerator
from utils.output_validator import coerce_release_notes, reconcile_issue, summarize_release_notes
from utils.prompt_builder import build_issue_messages, build_release_notes_messages
from utils.redaction import redact_issue
from utils.release_notes_models import CategorizedReleaseNotes, ReleaseNotesInput, ReleaseNotesSummary
from utils.validation import validate_issue_input, validate_release_notes_input
from utils.wrap import with_deadline

# Load environment variables from .env file
load_dotenv()

# Set up logging
logger = logging.getLogger(__name__)


@dataclass
class PipelineMeta:
	processing_time_ms: int
	model: str
	total_tokens: Optional[int] = None

	def to_dict(self) -> Dict[str, Any]:
		return {
			"processingTime": self.processing_time_ms,
			"model": self.model,
			"totalTokens": self.total_tokens,
		}


@dataclass
class ImprovementResult:
	issue: Issue
	meta: PipelineMeta


@dataclass
class ReleaseNotesResult:
	release_notes: CategorizedReleaseNotes
	summary: ReleaseNotesSummary
	meta: PipelineMeta


def _elapsed_ms(t0: float) -> int:
	return int((time.perf_counter() - t0) * 1000)


def _trace_shape(values: Any) -> Dict[str, Any]:
	"""Reduce traced inputs/outputs to sizes and metadata; caller text never leaves the process."""
	if not isinstance(values, dict):
		values = {"output": values}
	shape: Dict[str, Any] = {}
	for key, value in values.items():
		if key == "self":
			continue
		meta = getattr(value, "meta", None)
		if isinstance(meta, PipelineMeta):
			shape[key] = meta.to_dict()
		elif isinstance(value, Issue):
			shape[key] = {"title_len": len(value.title), "body_len": len(value.body), "labels": len(value.labels)}
		elif isinstance(value, ReleaseNotesInput):
			shape[key] = {"pull_requests": len(value.pull_requests)}
		else:
			shape[key] = type(value).__name__
	return shape


class GitGenieAgent:
	"""Orchestrates the guardrail pipeline around the model call."""

	def __init__(
		self,
		client: OpenAIClient,
		moderator: Optional[ContentModerator] = None,
		model_timeout_s: Optional[float] = None,
		moderation_enabled: Optional[bool] = None,
	):
		"""Initialize the agent.

		Args:
			client: Model client, already validated for a JSON-mode model.
			moderator: Optional ContentModerator. If None, one is built on `client`.
			model_timeout_s: Deadline for the model call (defaults to Config.MODEL_TIMEOUT_S).
			moderation_enabled: Override Config.MODERATION_ENABLED.
		"""
		self.client = client
		self.moderator = moderator or ContentModerator(client)
		self.model_timeout_s = float(model_timeout_s if model_timeout_s is not None else Config.MODEL_TIMEOUT_S)
		self.moderation_enabled = Config.MODERATION_ENABLED if moderation_enabled is None else moderation_enabled

	def _invoke(self, messages: List[Dict[str, str]], *, max_tokens: int, op: str) -> ChatCompletion:
		logger.info(f"→ Sending {op} request to OpenAI...")
		with Timer("openai.chat", op=op, model=self.client.model):
			return with_deadline(
				lambda: self.client.chat_json(
					messages, max_tokens=max_tokens, temperature=Config.MODEL_TEMPERATURE
				),
				max_runtime_s=self.model_timeout_s,
				on_timeout=lambda: incr("openai.timeout", op=op),
			)

	@traceable(
		name="improve_issue",
		project_name=Config.LANGSMITH_PROJECT,
		process_inputs=_trace_shape,
		process_outputs=_trace_shape,
	)
	def improve_issue(self, issue: Issue) -> ImprovementResult:
		"""Improve an issue with full validation and security.

		Raises:
			InputValidationError: empty, oversized or malicious input
			ContentModerationError: content flagged by the moderation classifier
			UpstreamServiceError: any model or parsing failure
		"""
		t0 = time.perf_counter()
		try:
			validate_issue_input(issue)
			logger.info("✓ Input validation passed")

			if self.moderation_enabled:
				if not self.moderator.is_safe(f"{issue.title}\n{issue.body}"):
					raise ContentModerationError("Content flagged by moderation system")
				logger.info("✓ Content moderation passed")

			sanitized = redact_issue(issue)
			logger.info("✓ Input sanitization completed")

			completion = self._invoke(
				build_issue_messages(sanitized), max_tokens=Config.ISSUE_MAX_TOKENS, op="improve_issue"
			)

			parsed = parse_json_object(completion.text)
			if not parsed.ok:
				logger.error(f"Failed to parse OpenAI response as JSON ({parsed.code}, {len(completion.text)} chars)")
				raise UpstreamServiceError("Invalid JSON response from AI")

			result = reconcile_issue(sanitized, parsed.value)
			logger.info("✓ Output validation completed")

			meta = PipelineMeta(_elapsed_ms(t0), completion.model, completion.total_tokens)
			logger.info(f"✅ Issue improvement completed in {meta.processing_time_ms}ms")
			incr("pipeline.improve_issue", ok=True)
			return ImprovementResult(issue=result, meta=meta)

		except (InputValidationError, ContentModerationError) as e:
			logger.warning(f"❌ Issue improvement rejected after {_elapsed_ms(t0)}ms: {e.code}")
			incr("pipeline.improve_issue", ok=False, code=e.code)
			raise
		except Exception as e:
			code = getattr(e, "code", None) or type(e).__name__
			logger.error(f"❌ Issue improvement failed after {_elapsed_ms(t0)}ms: {code}")
			incr("pipeline.improve_issue", ok=False, code=code)
			raise UpstreamServiceError("Failed to improve issue. Please try again.") from e

	@traceable(
		name="generate_release_notes",
		project_name=Config.LANGSMITH_PROJECT,
		process_inputs=_trace_shape,
		process_outputs=_trace_shape,
	)
	def generate_release_notes(self, data: ReleaseNotesInput) -> ReleaseNotesResult:
		"""Generate categorized release notes from merged pull requests.

		The model output is only coerced into the five categories; it does
		not go through the injection or similarity checks used for issues.
		"""
		t0 = time.perf_counter()
		try:
			validate_release_notes_input(data)
			logger.info(f"→ Generating release notes for {len(data.pull_requests)} pull requests...")

			completion = self._invoke(
				build_release_notes_messages(data),
				max_tokens=Config.RELEASE_NOTES_MAX_TOKENS,
				op="release_notes",
			)

			parsed = parse_json_object(completion.text)
			if not parsed.ok:
				logger.error(f"Failed to parse OpenAI response as JSON ({parsed.code}, {len(completion.text)} chars)")
				raise UpstreamServiceError("Invalid JSON response from AI")

			notes = coerce_release_notes(parsed.value)
			meta = PipelineMeta(_elapsed_ms(t0), completion.model, completion.total_tokens)
			logger.info(f"✅ Release notes generated in {meta.processing_time_ms}ms ({notes.total_items()} items)")
			incr("pipeline.release_notes", ok=True, items=notes.total_items())
			return ReleaseNotesResult(notes, summarize_release_notes(notes), meta)

		except InputValidationError as e:
			logger.warning(f"❌ Release notes rejected after {_elapsed_ms(t0)}ms: {e.code}")
			incr("pipeline.release_notes", ok=False, code=e.code)
			raise
		except Exception as e:
			code = getattr(e, "code", None) or type(e).__name__
			logger.error(f"❌ Release notes generation failed after {_elapsed_ms(t0)}ms: {code}")
			incr("pipeline.release_notes", ok=False, code=code)
			raise UpstreamServiceError("Failed to generate release notes. Please try again.") from e

	def close(self) -> None:
		"""Close the agent and cleanup resources."""
		self.client.close()
		logger.info("GitGenie agent closed")


def _unwrap(payload: Any, key: str) -> Any:
	if isinstance(payload, dict) and key in payload:
		return payload[key]
	return payload


def print_response_summary(command: str, status: int, body: Dict[str, Any]) -> None:
	"""Print a compact, human-readable view of a handler response.

	Args:
		command: CLI subcommand that produced the response
		status: Response status code
		body: Response envelope
	"""
	if status != 200:
		print(f"Error ({status}): {body.get('error')} - {body.get('message')}")
		return

	if command == "improve":
		issue = body["improvedIssue"]
		print(f"Title: {issue['title']}")
		print(f"Labels: {', '.join(issue['labels']) or 'none'}")
		for key in ("priority", "assignee", "status"):
			if issue.get(key):
				print(f"{key.capitalize()}: {issue[key]}")
		print()
		print(issue["body"])
	else:
		for category, items in body["releaseNotes"].items():
			print(f"{category} ({len(items)})")
			for item in items:
				ref = f" (#{item['prNumber']})" if item.get("prNumber") else ""
				print(f"  - {item['title']}{ref}")
		print(f"Total changes: {body['summary']['totalChanges']}")

	meta = body.get("meta", {})
	print(f"\nModel: {meta.get('model')} | tokens: {meta.get('totalTokens')} | {meta.get('processingTime')}ms")


def main(argv: Optional[List[str]] = None):
	"""CLI entry point for the GitGenie agent."""
	import argparse
	from agents.request_handler import RequestHandler
	from utils.rate_limiter import SlidingWindowRateLimiter

	parser = argparse.ArgumentParser(
		description="GitGenie - Improve issues and draft release notes with guardrails",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.gitgenie_agent improve --input issue.json
  python -m agents.gitgenie_agent improve --input issue.json --json
  python -m agents.gitgenie_agent release-notes --input prs.json --model gpt-4-0125-preview
		"""
	)
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
	sub = parser.add_subparsers(dest="command", required=True)

	imp = sub.add_parser("improve", help="Improve an issue")
	imp.add_argument("--input", required=True, help="JSON file with the issue (or {\"issue\": {...}})")
	imp.add_argument("--model", required=False)
	imp.add_argument("--json", action="store_true", help="Print the raw response envelope as JSON")

	rn = sub.add_parser("release-notes", help="Generate release notes")
	rn.add_argument("--input", required=True, help="JSON file with the input (or {\"input\": {...}})")
	rn.add_argument("--model", required=False)
	rn.add_argument("--json", action="store_true", help="Print the raw response envelope as JSON")

	args = parser.parse_args(argv)

	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)
	if not args.verbose:
		logging.getLogger("gitgenie.metrics").setLevel(logging.WARNING)

	try:
		with open(args.input, "r", encoding="utf-8") as f:
			payload = json.load(f)
	except (OSError, json.JSONDecodeError) as e:
		print(f"Error: cannot read input file: {e}", file=sys.stderr)
		sys.exit(1)

	api_key = os.getenv("OPENAI_API_KEY", "")
	handler = RequestHandler(SlidingWindowRateLimiter())
	try:
		if args.command == "improve":
			response = handler.improve_issue(_unwrap(payload, "issue"), api_key, model=args.model)
		else:
			response = handler.generate_release_notes(_unwrap(payload, "input"), api_key, model=args.model)
	except KeyboardInterrupt:
		print("\nOperation cancelled by user", file=sys.stderr)
		sys.exit(1)

	if args.json:
		print(json.dumps(response.body, indent=2, ensure_ascii=False))
	else:
		print_response_summary(args.command, response.status, response.body)
	sys.exit(0 if response.status == 200 else 1)


if __name__ == "__main__":
	main()
