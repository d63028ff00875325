import os
from typing import Dict, Any, List


def _csv(value: str) -> List[str]:
	return [p.strip() for p in value.split(",") if p.strip()]


class Config:
	"""Configuration for the GitGenie guardrail backend."""

	# OpenAI Configuration
	OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip('/')
	OPENAI_DEFAULT_MODEL = os.getenv("OPENAI_DEFAULT_MODEL", "gpt-4-turbo-preview")
	# Models that support JSON mode (response_format)
	SUPPORTED_MODELS = _csv(os.getenv(
		"SUPPORTED_MODELS",
		"gpt-4-turbo-preview,gpt-4-1106-preview,gpt-4-0125-preview,gpt-3.5-turbo-1106,gpt-3.5-turbo-0125",
	))
	API_KEY_PREFIX = os.getenv("API_KEY_PREFIX", "sk-")

	# HTTP behavior
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	HTTP_RETRY_TOTAL = int(os.getenv("HTTP_RETRY_TOTAL", "2"))
	MODEL_TIMEOUT_S = int(os.getenv("MODEL_TIMEOUT_S", "60"))

	# Generation parameters
	MODEL_TEMPERATURE = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
	ISSUE_MAX_TOKENS = int(os.getenv("ISSUE_MAX_TOKENS", "2000"))
	RELEASE_NOTES_MAX_TOKENS = int(os.getenv("RELEASE_NOTES_MAX_TOKENS", "3000"))

	# Input limits
	MAX_INPUT_TITLE_LENGTH = int(os.getenv("MAX_INPUT_TITLE_LENGTH", "500"))
	MAX_INPUT_BODY_LENGTH = int(os.getenv("MAX_INPUT_BODY_LENGTH", "10000"))
	MAX_PULL_REQUESTS = int(os.getenv("MAX_PULL_REQUESTS", "50"))

	# Output limits
	MAX_TITLE_LENGTH = int(os.getenv("MAX_TITLE_LENGTH", "100"))
	MAX_BODY_LENGTH = int(os.getenv("MAX_BODY_LENGTH", "2000"))
	SIMILARITY_THRESHOLD = float(os.getenv("SIMILARITY_THRESHOLD", "0.2"))
	SIMILARITY_MIN_WORDS = int(os.getenv("SIMILARITY_MIN_WORDS", "3"))

	# Rate limiting (in-memory, per caller)
	RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "10"))
	RATE_LIMIT_PER_HOUR = int(os.getenv("RATE_LIMIT_PER_HOUR", "100"))
	RATE_LIMIT_CLEANUP_S = int(os.getenv("RATE_LIMIT_CLEANUP_S", "3600"))

	# Guardrail feature flags
	MODERATION_ENABLED = bool(int(os.getenv("MODERATION_ENABLED", "1")))
	MODERATION_FAIL_OPEN = bool(int(os.getenv("MODERATION_FAIL_OPEN", "1")))
	ALLOW_JSON_REPAIR = bool(int(os.getenv("ALLOW_JSON_REPAIR", "0")))

	# Observability
	METRICS_ENABLED = bool(int(os.getenv("METRICS_ENABLED", "1")))
	# LangSmith tracing is active only when LANGSMITH_TRACING and LANGSMITH_API_KEY are set
	LANGSMITH_PROJECT = os.getenv("LANGSMITH_PROJECT", "gitgenie")

	@classmethod
	def get_openai_config(cls) -> Dict[str, Any]:
		"""Get OpenAI connection configuration (never includes the credential)."""
		return {
			"base_url": cls.OPENAI_BASE_URL,
			"default_model": cls.OPENAI_DEFAULT_MODEL,
			"supported_models": list(cls.SUPPORTED_MODELS),
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"retry_total": cls.HTTP_RETRY_TOTAL,
		}

	@classmethod
	def get_rate_limit_config(cls) -> Dict[str, int]:
		return {
			"per_minute": cls.RATE_LIMIT_PER_MINUTE,
			"per_hour": cls.RATE_LIMIT_PER_HOUR,
			"cleanup_interval_s": cls.RATE_LIMIT_CLEANUP_S,
		}

	@classmethod
	def get_output_limits(cls) -> Dict[str, Any]:
		"""Get output reconciliation limits.

		Returns:
			Mapping with title/body caps and the similarity guard settings.
		"""
		return {
			"max_title": cls.MAX_TITLE_LENGTH,
			"max_body": cls.MAX_BODY_LENGTH,
			"similarity_threshold": cls.SIMILARITY_THRESHOLD,
			"similarity_min_words": cls.SIMILARITY_MIN_WORDS,
		}
