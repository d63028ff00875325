#!/usr/bin/env python3
"""Release notes models for structured input and output.

Field names are snake_case in Python and camelCase on the wire; both are
accepted when validating.
"""
from datetime import date
from typing import Literal, Optional, List
from pydantic import BaseModel, ConfigDict, Field

Impact = Literal["critical", "high", "medium", "low"]

CATEGORY_KEYS = ("features", "bugFixes", "security", "performance", "maintenance")


class _WireModel(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PullRequest(_WireModel):
	"""One merged pull request to summarize."""

	number: int
	title: str
	body: str = ""
	labels: Optional[List[str]] = None
	merged_at: str = Field(..., alias="mergedAt")
	author: str
	linked_issues: Optional[List[int]] = Field(None, alias="linkedIssues")


class LinkedIssue(_WireModel):
	"""An issue referenced by one or more pull requests."""

	number: int
	title: str
	labels: Optional[List[str]] = None


class DateRange(_WireModel):
	from_: date = Field(..., alias="from")
	to: date


class ReleaseNotesInput(_WireModel):
	"""Everything the model needs to draft categorized release notes."""

	repository: str
	date_range: DateRange = Field(..., alias="dateRange")
	branch: Optional[str] = None
	pull_requests: List[PullRequest] = Field(default_factory=list, alias="pullRequests")
	linked_issues: Optional[List[LinkedIssue]] = Field(None, alias="linkedIssues")


class ReleaseNoteItem(_WireModel):
	"""One entry under a release notes category."""

	title: str
	description: str = ""
	pr_number: Optional[int] = Field(None, alias="prNumber")
	issue_numbers: Optional[List[int]] = Field(None, alias="issueNumbers")
	impact: Optional[Impact] = None
	internal: Optional[bool] = None


class CategorizedReleaseNotes(_WireModel):
	"""Five fixed buckets; every bucket is always present."""

	features: List[ReleaseNoteItem] = Field(default_factory=list)
	bug_fixes: List[ReleaseNoteItem] = Field(default_factory=list, alias="bugFixes")
	security: List[ReleaseNoteItem] = Field(default_factory=list)
	performance: List[ReleaseNoteItem] = Field(default_factory=list)
	maintenance: List[ReleaseNoteItem] = Field(default_factory=list)

	def total_items(self) -> int:
		return (
			len(self.features) + len(self.bug_fixes) + len(self.security)
			+ len(self.performance) + len(self.maintenance)
		)


class ReleaseNotesSummary(_WireModel):
	total_changes: int = Field(0, alias="totalChanges")
	new_features: int = Field(0, alias="newFeatures")
	bug_fixes: int = Field(0, alias="bugFixes")
	security_updates: int = Field(0, alias="securityUpdates")
	performance_improvements: int = Field(0, alias="performanceImprovements")
	maintenance_updates: int = Field(0, alias="maintenanceUpdates")
