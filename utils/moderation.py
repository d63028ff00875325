#!/usr/bin/env python3
"""Thin adapter over the external moderation classifier."""

from __future__ import annotations

import logging
from typing import Optional

from clients.openai_client import OpenAIClient, OpenAIError
from configs.config import Config
from utils.errors import UpstreamServiceError
from utils.metrics import incr

logger = logging.getLogger(__name__)


class ContentModerator:
    """Decide whether caller content is safe to forward to the model.

    When the classifier itself is unreachable the outcome depends on
    `fail_open`: True admits the content and logs a degraded-mode warning,
    False raises UpstreamServiceError so the request is refused.
    """

    def __init__(self, client: OpenAIClient, fail_open: Optional[bool] = None) -> None:
        self.client = client
        self.fail_open = Config.MODERATION_FAIL_OPEN if fail_open is None else bool(fail_open)

    def is_safe(self, text: str) -> bool:
        try:
            result = self.client.moderate(text)
        except OpenAIError as e:
            return self._degraded(e.code)
        except Exception as e:  # noqa: BLE001
            return self._degraded(type(e).__name__)

        if result.flagged:
            logger.warning(f"Content flagged by moderation: {', '.join(result.categories) or 'unspecified'}")
            incr("moderation.flagged")
            return False
        return True

    def _degraded(self, reason: str) -> bool:
        incr("moderation.degraded", reason=reason, fail_open=self.fail_open)
        if self.fail_open:
            logger.warning(f"Moderation unavailable ({reason}); continuing in degraded mode (fail-open)")
            return True
        logger.error(f"Moderation unavailable ({reason}); refusing request (fail-closed)")
        raise UpstreamServiceError("Moderation service unavailable")
