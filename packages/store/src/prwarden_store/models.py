"""Review pipeline data models.

Decoupled from prwarden_core so the store layer can be used independently
and prwarden_core talks to persistence only through BaseStore.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

REVIEW_STATUSES = ("pending", "processing", "completed", "failed")
FINDING_CATEGORIES = ("security", "performance", "style", "logic", "best-practice")
FINDING_SEVERITIES = ("low", "medium", "high")


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def clamp_score(score: int | float) -> int:
    """Round a quality score and clamp it into [1, 100].

    Infinities clamp to the nearest bound; NaN raises ValueError.
    """
    if isinstance(score, float) and math.isnan(score):
        raise ValueError("score is not a number")
    if isinstance(score, float) and math.isinf(score):
        return 100 if score > 0 else 1
    return max(1, min(100, int(round(score))))


@dataclass
class User:
    """A GitHub account seen on a webhook event."""

    id: int
    name: str
    email: str
    origin_id: str | None = None
    avatar_url: str | None = None
    created_at: str = field(default_factory=utcnow)


@dataclass
class Repository:
    id: int
    origin_id: int
    name: str
    full_name: str
    owner: str
    user_id: int
    private: bool = False
    is_active: bool = True
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)


@dataclass
class PullRequest:
    id: int
    origin_id: int
    number: int
    title: str
    state: str  # "open" | "closed" | "merged" as reported by GitHub
    repository_id: int
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)


@dataclass
class Review:
    """One analysis attempt over a pull request.

    summary and score stay None until the pipeline reaches a terminal status.
    A failed review carries the error-derived summary and no score.
    """

    id: int
    status: str
    pull_request_id: int
    user_id: int
    summary: str | None = None
    score: int | None = None
    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)


@dataclass
class Finding:
    """A single observation attached to a review. Never updated once written."""

    id: int
    review_id: int
    content: str
    category: str
    severity: str
    file_path: str | None = None
    line_number: int | None = None
    created_at: str = field(default_factory=utcnow)


@dataclass
class ReviewDetail:
    """A review joined with its pull request, repository and findings.

    Read model for the query endpoints and the CLI history views.
    """

    review: Review
    pull_request: PullRequest
    repository: Repository
    findings: list[Finding] = field(default_factory=list)
