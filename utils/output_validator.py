#!/usr/bin/env python3
"""Reconcile untrusted model output against trusted originals.

Every failure mode degrades to returning trustworthy data; nothing in this
module raises on bad model output.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from configs.config import Config
from utils.injection import looks_injected
from utils.issue_models import Issue
from utils.json_sanitizer import ParseResult
from utils.redaction import redact
from utils.release_notes_models import (
    CATEGORY_KEYS,
    CategorizedReleaseNotes,
    ReleaseNoteItem,
    ReleaseNotesSummary,
)

logger = logging.getLogger(__name__)

ELLIPSIS = "..."

# Unterminated placeholder such as "[PASSWORD_RED" at the end of a cut
_PARTIAL_PLACEHOLDER = re.compile(r"\[[A-Z_]*$")


class IssueCandidate(BaseModel):
    """Shape the model is asked to return. Unknown keys are ignored.

    Values stay untyped here; each one is checked on its own during the merge
    so a single bad field only reverts that field.
    """

    title: Optional[Any] = None
    body: Optional[Any] = None
    labels: Optional[Any] = None
    priority: Optional[Any] = None
    assignee: Optional[Any] = None
    status: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")


def parse_issue_candidate(data: Any) -> ParseResult:
    if not isinstance(data, dict):
        return ParseResult.failure("STRUCTURE", "Candidate is not a keyed record")
    return ParseResult.success(IssueCandidate.model_validate(data))


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _words(text: str) -> set:
    return set(text.lower().split())


def title_similarity(a: str, b: str) -> float:
    """Word overlap |A & B| / max(|A|, |B|) on case-folded whitespace tokens."""
    wa, wb = _words(a), _words(b)
    denom = max(len(wa), len(wb))
    if denom == 0:
        return 1.0
    return len(wa & wb) / denom


def _pick(name: str, candidate: Any, fallback: Optional[str]) -> Optional[str]:
    if isinstance(candidate, str) and candidate:
        return candidate
    if candidate is not None and candidate != "":
        logger.warning(f"Ignoring improved {name} of type {type(candidate).__name__}, keeping original")
    return fallback


def _cap(text: str, limit: int) -> str:
    """Truncate redacted text without leaving half a placeholder behind."""
    if len(text) <= limit:
        return text
    kept = text[: limit - len(ELLIPSIS)]
    partial = _PARTIAL_PLACEHOLDER.search(kept)
    if partial:
        kept = kept[: partial.start()]
    return kept + ELLIPSIS


def _pick_labels(candidate: Any, fallback: List[str]) -> List[str]:
    if isinstance(candidate, list) and candidate and all(isinstance(x, str) for x in candidate):
        return list(candidate)
    return list(fallback or [])


def reconcile_issue(original: Issue, candidate: Any) -> Issue:
    """Merge candidate into original under the output guardrails.

    Steps: structural check, field merge, length caps, injection re-check,
    title similarity guard, final redaction. Redaction can lengthen text, so
    the caps are applied once more to the redacted values.
    """
    limits = Config.get_output_limits()

    parsed = parse_issue_candidate(candidate)
    if not parsed.ok:
        logger.warning(f"Invalid improved issue format ({parsed.code}), returning original")
        return original
    cand: IssueCandidate = parsed.value

    title = _pick("title", cand.title, original.title)
    body = _pick("body", cand.body, original.body)
    labels = _pick_labels(cand.labels, original.labels)
    priority = _pick("priority", cand.priority, original.priority)
    assignee = _pick("assignee", cand.assignee, original.assignee)
    status = _pick("status", cand.status, original.status)

    if len(title) > limits["max_title"]:
        logger.warning("Title exceeded max length, truncating")
        title = truncate(title, limits["max_title"])
    if len(body) > limits["max_body"]:
        logger.warning("Body exceeded max length, truncating")
        body = truncate(body, limits["max_body"])

    if looks_injected(title, body):
        logger.error("Prompt injection detected in AI output, using original")
        return original

    original_words = _words(original.title)
    if (
        len(original_words) > limits["similarity_min_words"]
        and title_similarity(original.title, title) < limits["similarity_threshold"]
    ):
        logger.warning("Title similarity too low, keeping original title")
        title = original.title

    return Issue(
        title=_cap(redact(title), limits["max_title"]),
        body=_cap(redact(body), limits["max_body"]),
        labels=labels,
        priority=priority,
        assignee=assignee,
        status=status,
    )


def _coerce_items(key: str, raw: Any) -> List[ReleaseNoteItem]:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(f"Release notes category '{key}' is not a list, using empty")
        return []
    items: List[ReleaseNoteItem] = []
    for entry in raw:
        try:
            items.append(ReleaseNoteItem.model_validate(entry))
        except ValidationError:
            logger.warning(f"Dropping malformed release note item in '{key}'")
    return items


def coerce_release_notes(data: Any) -> CategorizedReleaseNotes:
    """Build the five-bucket structure, defaulting any bad category to empty."""
    record = data if isinstance(data, dict) else {}
    buckets = {key: _coerce_items(key, record.get(key)) for key in CATEGORY_KEYS}
    return CategorizedReleaseNotes.model_validate(buckets)


def summarize_release_notes(notes: CategorizedReleaseNotes) -> ReleaseNotesSummary:
    return ReleaseNotesSummary(
        total_changes=notes.total_items(),
        new_features=len(notes.features),
        bug_fixes=len(notes.bug_fixes),
        security_updates=len(notes.security),
        performance_improvements=len(notes.performance),
        maintenance_updates=len(notes.maintenance),
    )
