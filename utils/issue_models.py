#!/usr/bin/env python3
"""Pydantic model for the issue record that flows through the pipeline.

Issues are frozen: every stage produces a new value with `model_copy`
instead of mutating the one it received.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Issue(BaseModel):
    """A software issue as submitted by the caller or returned by the model."""

    title: str = Field(..., description="Issue title")
    body: str = Field(..., description="Issue body (markdown allowed)")
    labels: List[str] = Field(default_factory=list, description="Labels, order preserved")
    priority: Optional[str] = Field(None, description="Priority, free text")
    assignee: Optional[str] = Field(None, description="Assignee login or name")
    status: Optional[str] = Field(None, description="Workflow status")

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("labels", mode="before")
    @classmethod
    def _labels_default(cls, value):
        return [] if value is None else value

    def with_text(self, title: str, body: str) -> "Issue":
        """Return a copy with title and body replaced."""
        return self.model_copy(update={"title": title, "body": body})
