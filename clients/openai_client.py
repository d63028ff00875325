#!/usr/bin/env python3
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config

logger = logging.getLogger(__name__)


class OpenAIError(Exception):
	"""Typed error with a lightweight `.code` used by the agent for guardrails."""
	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


class UnsupportedModelError(ValueError):
	"""Raised at construction when the model cannot do JSON mode."""


@dataclass
class ChatCompletion:
	text: str
	model: str
	usage: Dict[str, int] = field(default_factory=dict)

	@property
	def total_tokens(self) -> Optional[int]:
		return self.usage.get("total_tokens")


@dataclass
class ModerationResult:
	flagged: bool
	categories: List[str] = field(default_factory=list)
	category_scores: Dict[str, float] = field(default_factory=dict)


def validate_model(model: Optional[str]) -> str:
	requested = model or Config.OPENAI_DEFAULT_MODEL
	if requested not in Config.SUPPORTED_MODELS:
		raise UnsupportedModelError(
			f"Unsupported model: {requested}. Use one of: {', '.join(Config.SUPPORTED_MODELS)}"
		)
	return requested


class OpenAIClient:
	"""Client for the OpenAI chat-completions (JSON mode) and moderation endpoints.

	The credential only lives in the session's Authorization header; it is
	never stored on the instance, logged, or included in error messages.
	"""

	def __init__(
		self,
		api_key: str,
		model: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		timeout_s: Optional[int] = None,
		session: Optional[requests.Session] = None,
	) -> None:
		cfg = Config.get_openai_config()
		self.model = validate_model(model)
		self.base_url = (base_url or cfg["base_url"]).rstrip('/')
		self.timeout_s = int(timeout_s if timeout_s is not None else cfg["timeout_s"])

		self.session = session or requests.Session()
		self.session.headers.update({
			'Authorization': f'Bearer {api_key}',
			'Content-Type': 'application/json',
			'User-Agent': 'gitgenie-backend/1.0'
		})
		# Connect and gateway-status retries only; read errors are never retried
		retry_strategy = Retry(
			total=cfg["retry_total"],
			read=0,
			status_forcelist=[502, 503, 504],
			backoff_factor=1,
			allowed_methods=["POST"],
			raise_on_status=False,
		)
		adapter = HTTPAdapter(max_retries=retry_strategy)
		self.session.mount("https://", adapter)

	def __repr__(self) -> str:
		return f"OpenAIClient(model={self.model!r}, base_url={self.base_url!r})"

	def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		url = f"{self.base_url}/{path.lstrip('/')}"
		try:
			response = self.session.post(url, json=payload, timeout=self.timeout_s)
		except requests.Timeout as e:
			raise OpenAIError(f"OpenAI request timed out: {type(e).__name__}", code="TIMEOUT")
		except requests.RequestException as e:
			raise OpenAIError(f"OpenAI request failed: {type(e).__name__}", code="NETWORK")

		status = response.status_code
		if status in (401, 403):
			raise OpenAIError(f"OpenAI rejected the credential: HTTP {status}", code="AUTH")
		elif status == 429:
			raise OpenAIError("OpenAI rate limit or quota exceeded: HTTP 429", code="RATE_LIMIT")
		elif status >= 500:
			raise OpenAIError(f"OpenAI server error: HTTP {status}", code="SERVER")
		elif status != 200:
			raise OpenAIError(f"OpenAI API error: HTTP {status}", code="HTTP")

		try:
			data = response.json()
		except ValueError:
			raise OpenAIError("Invalid JSON envelope from OpenAI", code="BAD_RESPONSE")
		if not isinstance(data, dict):
			raise OpenAIError("Unexpected OpenAI envelope", code="BAD_RESPONSE")
		return data

	def chat_json(
		self,
		messages: List[Dict[str, str]],
		*,
		max_tokens: int,
		temperature: float,
	) -> ChatCompletion:
		"""Request a JSON-object completion and return the raw generated text."""
		payload = {
			"model": self.model,
			"messages": messages,
			"temperature": temperature,
			"max_tokens": max_tokens,
			"response_format": {"type": "json_object"},
		}
		data = self._post("chat/completions", payload)
		try:
			content = data["choices"][0]["message"]["content"]
		except (KeyError, IndexError, TypeError):
			raise OpenAIError("Missing choices in OpenAI response", code="BAD_RESPONSE")
		if not content or not str(content).strip():
			raise OpenAIError("No response from OpenAI", code="EMPTY")
		usage = data.get("usage") or {}
		completion = ChatCompletion(
			text=str(content),
			model=str(data.get("model") or self.model),
			usage={k: v for k, v in usage.items() if isinstance(v, int)},
		)
		logger.info(
			f"✓ OpenAI response received (model: {self.model}, "
			f"{completion.total_tokens or 'unknown'} tokens)"
		)
		return completion

	def moderate(self, text: str) -> ModerationResult:
		"""Classify text with the moderation endpoint."""
		data = self._post("moderations", {"input": text})
		try:
			result = data["results"][0]
		except (KeyError, IndexError, TypeError):
			raise OpenAIError("Missing results in moderation response", code="BAD_RESPONSE")
		categories = result.get("categories") or {}
		return ModerationResult(
			flagged=bool(result.get("flagged")),
			categories=sorted(k for k, v in categories.items() if v),
			category_scores=dict(result.get("category_scores") or {}),
		)

	def close(self) -> None:
		self.session.close()


__all__ = [
	"ChatCompletion",
	"ModerationResult",
	"OpenAIClient",
	"OpenAIError",
	"UnsupportedModelError",
	"validate_model",
]
