"""In-memory store: zero configuration, used for tests and local dry runs.

Enforces the same uniqueness rules as SQLiteStore so the entity resolver
behaves identically against either backend. Nothing survives the process.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from prwarden_store.base import BaseStore, DuplicateRecordError
from prwarden_store.models import (
    Finding,
    PullRequest,
    Repository,
    Review,
    ReviewDetail,
    User,
    clamp_score,
    utcnow,
)


class MemoryStore(BaseStore):
    """Keeps every record in dicts keyed by internal id, guarded by one lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self._next_id = 0
        self.users: dict[int, User] = {}
        self.repositories: dict[int, Repository] = {}
        self.pull_requests: dict[int, PullRequest] = {}
        self.reviews: dict[int, Review] = {}
        self.findings: dict[int, Finding] = {}

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def get_user_by_origin_id(self, origin_id: str) -> User | None:
        with self._lock:
            return next((u for u in self.users.values() if u.origin_id == origin_id), None)

    def create_user(self, origin_id, name, email, avatar_url=None) -> User:
        with self._lock:
            for u in self.users.values():
                if (origin_id is not None and u.origin_id == origin_id) or u.email == email:
                    raise DuplicateRecordError(f"user {origin_id or email} already exists")
            user = User(id=self._new_id(), origin_id=origin_id, name=name, email=email, avatar_url=avatar_url)
            self.users[user.id] = user
            return user

    def get_repository_by_origin_id(self, origin_id: int) -> Repository | None:
        with self._lock:
            return next((r for r in self.repositories.values() if r.origin_id == origin_id), None)

    def create_repository(self, origin_id, name, full_name, owner, user_id, private=False) -> Repository:
        with self._lock:
            if any(r.origin_id == origin_id for r in self.repositories.values()):
                raise DuplicateRecordError(f"repository {origin_id} already exists")
            repo = Repository(
                id=self._new_id(),
                origin_id=origin_id,
                name=name,
                full_name=full_name,
                owner=owner,
                user_id=user_id,
                private=bool(private),
            )
            self.repositories[repo.id] = repo
            return repo

    def get_pull_request_by_origin_id(self, origin_id: int) -> PullRequest | None:
        with self._lock:
            return next((p for p in self.pull_requests.values() if p.origin_id == origin_id), None)

    def create_pull_request(self, origin_id, number, title, state, repository_id) -> PullRequest:
        with self._lock:
            for p in self.pull_requests.values():
                if p.origin_id == origin_id or (p.repository_id == repository_id and p.number == number):
                    raise DuplicateRecordError(f"pull request {origin_id} already exists")
            pr = PullRequest(
                id=self._new_id(),
                origin_id=origin_id,
                number=number,
                title=title,
                state=state,
                repository_id=repository_id,
            )
            self.pull_requests[pr.id] = pr
            return pr

    def update_pull_request(self, pull_request_id: int, title: str, state: str) -> PullRequest:
        with self._lock:
            pr = replace(self.pull_requests[pull_request_id], title=title, state=state, updated_at=utcnow())
            self.pull_requests[pr.id] = pr
            return pr

    def create_review(self, pull_request_id: int, user_id: int, status: str = "pending") -> Review:
        with self._lock:
            review = Review(id=self._new_id(), status=status, pull_request_id=pull_request_id, user_id=user_id)
            self.reviews[review.id] = review
            return review

    def update_review(self, review_id, status=None, summary=None, score=None) -> Review:
        with self._lock:
            review = self.reviews[review_id]
            changes: dict = {"updated_at": utcnow()}
            if status is not None:
                changes["status"] = status
            if summary is not None:
                changes["summary"] = summary
            if score is not None:
                changes["score"] = clamp_score(score)
            review = replace(review, **changes)
            self.reviews[review_id] = review
            return review

    def create_finding(self, review_id, content, category, severity, file_path=None, line_number=None) -> Finding:
        with self._lock:
            if review_id not in self.reviews:
                raise KeyError(f"Review {review_id} not found")
            finding = Finding(
                id=self._new_id(),
                review_id=review_id,
                content=content,
                category=category,
                severity=severity,
                file_path=file_path,
                line_number=line_number,
            )
            self.findings[finding.id] = finding
            return finding

    def get_review(self, review_id: int) -> ReviewDetail | None:
        with self._lock:
            review = self.reviews.get(review_id)
            return self._build_detail(review) if review else None

    def list_reviews(self, repo: str | None = None) -> list[ReviewDetail]:
        with self._lock:
            details = [self._build_detail(r) for r in sorted(self.reviews.values(), key=lambda r: r.id, reverse=True)]
        if repo is not None:
            details = [d for d in details if d.repository.full_name == repo]
        return details

    def list_reviews_by_status(self, statuses: tuple[str, ...]) -> list[ReviewDetail]:
        with self._lock:
            matching = [r for r in sorted(self.reviews.values(), key=lambda r: r.id) if r.status in statuses]
            return [self._build_detail(r) for r in matching]

    def _build_detail(self, review: Review) -> ReviewDetail:
        pull_request = self.pull_requests[review.pull_request_id]
        return ReviewDetail(
            review=review,
            pull_request=pull_request,
            repository=self.repositories[pull_request.repository_id],
            findings=[f for f in self.findings.values() if f.review_id == review.id],
        )
