#!/usr/bin/env python3
"""Caller-facing surface consumed by an HTTP layer.

Maps the pipeline's error taxonomy to distinct outcomes:

  - InputValidationError   -> 400, specific message
  - ContentModerationError -> 403, generic message
  - RateLimitExceeded      -> 429, retry-after hint and remaining headroom
  - UpstreamServiceError   -> 502, generic retry message
  - anything else          -> 500

The raw credential never leaves this module except inside the model
client's Authorization header.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from agents.gitgenie_agent import GitGenieAgent
from clients.openai_client import OpenAIClient, UnsupportedModelError
from configs.config import Config
from utils.errors import (
    ContentModerationError,
    InputValidationError,
    RateLimitExceeded,
    UpstreamServiceError,
)
from utils.rate_limiter import SlidingWindowRateLimiter, rate_limit_identifier
from utils.validation import parse_issue_payload, parse_release_notes_payload

logger = logging.getLogger(__name__)


@dataclass
class Response:
    status: int
    body: Dict[str, Any] = field(default_factory=dict)


def _error(status: int, error: str, message: str, **extra) -> Response:
    body = {"error": error, "message": message}
    body.update(extra)
    return Response(status, body)


class RequestHandler:
    def __init__(
        self,
        limiter: SlidingWindowRateLimiter,
        client_factory: Callable[..., OpenAIClient] = OpenAIClient,
        agent_factory: Callable[[OpenAIClient], GitGenieAgent] = GitGenieAgent,
    ) -> None:
        self.limiter = limiter
        self.client_factory = client_factory
        self.agent_factory = agent_factory

    def _admit(self, identifier: str) -> Optional[Response]:
        try:
            self.limiter.check_limit(identifier)
        except RateLimitExceeded as e:
            logger.warning(f"Rate limit exceeded for {identifier[:8]}... ({e.scope})")
            return _error(
                429,
                "Rate Limit Exceeded",
                str(e),
                retryAfter=e.retry_after_ms,
                remaining=self.limiter.get_remaining_requests(identifier).to_dict(),
            )
        return None

    def _check_credential(self, api_key: Optional[str]) -> Optional[Response]:
        if not api_key:
            return _error(400, "Missing API Key", "OpenAI API key is required in x-openai-api-key header")
        if not api_key.startswith(Config.API_KEY_PREFIX):
            return _error(400, "Invalid API Key", f'OpenAI API key must start with "{Config.API_KEY_PREFIX}"')
        return None

    def _map_error(self, e: Exception, endpoint: str, t0: float) -> Response:
        duration = int((time.perf_counter() - t0) * 1000)
        code = getattr(e, "code", type(e).__name__)
        logger.error(f"❌ Error in {endpoint} endpoint ({duration}ms): {code}")
        if isinstance(e, InputValidationError):
            return _error(400, "Validation Error", str(e))
        if isinstance(e, ContentModerationError):
            return _error(403, "Content Moderation", "Content was flagged by our moderation system")
        if isinstance(e, UpstreamServiceError):
            return _error(502, "AI Service Error", "Unable to process request with AI service. Please try again.")
        return _error(500, "Internal Server Error", "An unexpected error occurred. Please try again.")

    def _run(self, endpoint: str, api_key: Optional[str], remote_addr: Optional[str], work) -> Response:
        t0 = time.perf_counter()
        identifier = rate_limit_identifier(api_key, remote_addr)

        denied = self._admit(identifier)
        if denied is not None:
            return denied
        invalid = self._check_credential(api_key)
        if invalid is not None:
            return invalid

        logger.info(f"→ Processing {endpoint} request from {identifier[:8]}...")
        try:
            body = work()
        except Exception as e:  # noqa: BLE001
            return self._map_error(e, endpoint, t0)

        body["meta"] = {
            **body.get("meta", {}),
            "processingTime": int((time.perf_counter() - t0) * 1000),
            "remaining": self.limiter.get_remaining_requests(identifier).to_dict(),
        }
        logger.info(f"✅ {endpoint} succeeded in {body['meta']['processingTime']}ms")
        return Response(200, body)

    def _agent(self, api_key: str, model: Optional[str]) -> GitGenieAgent:
        try:
            client = self.client_factory(api_key, model)
        except UnsupportedModelError as e:
            raise InputValidationError(str(e))
        return self.agent_factory(client)

    def improve_issue(
        self,
        payload: Any,
        api_key: Optional[str],
        remote_addr: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Response:
        def work() -> Dict[str, Any]:
            issue = parse_issue_payload(payload)
            agent = self._agent(api_key, model)
            try:
                result = agent.improve_issue(issue)
            finally:
                agent.close()
            return {
                "improvedIssue": result.issue.model_dump(),
                "meta": result.meta.to_dict(),
            }

        return self._run("/improve", api_key, remote_addr, work)

    def generate_release_notes(
        self,
        payload: Any,
        api_key: Optional[str],
        remote_addr: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Response:
        def work() -> Dict[str, Any]:
            data = parse_release_notes_payload(payload)
            agent = self._agent(api_key, model)
            try:
                result = agent.generate_release_notes(data)
            finally:
                agent.close()
            return {
                "releaseNotes": result.release_notes.model_dump(by_alias=True, exclude_none=True),
                "summary": result.summary.model_dump(by_alias=True),
                "meta": result.meta.to_dict(),
            }

        return self._run("/generate", api_key, remote_addr, work)

    def rate_limit_status(self, api_key: Optional[str], remote_addr: Optional[str] = None) -> Response:
        identifier = rate_limit_identifier(api_key, remote_addr)
        return Response(200, {
            "identifier": identifier[:8] + "...",
            "remaining": self.limiter.get_remaining_requests(identifier).to_dict(),
            "limits": {"perMinute": self.limiter.per_minute, "perHour": self.limiter.per_hour},
        })

    def health(self) -> Response:
        return Response(200, {"status": "ok", "message": "GitGenie backend is running"})
