"""Abstract store interface.

The review pipeline depends on BaseStore, not on a concrete backend, so
backends are swappable without touching prwarden_core. Backends must enforce
uniqueness of origin ids themselves and report a violation by raising
DuplicateRecordError; the entity resolver relies on that to stay idempotent
under duplicate webhook deliveries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prwarden_store.models import Finding, PullRequest, Repository, Review, ReviewDetail, User


class DuplicateRecordError(Exception):
    """Raised when an insert collides with an existing unique key."""


class BaseStore(ABC):
    """Pluggable persistence layer for users, repositories, pull requests and reviews."""

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def get_user_by_origin_id(self, origin_id: str) -> User | None:
        """Return the user with this GitHub id, or None."""

    @abstractmethod
    def create_user(
        self, origin_id: str | None, name: str, email: str, avatar_url: str | None = None
    ) -> User:
        """Insert a user. Raises DuplicateRecordError if origin_id or email is taken."""

    # ------------------------------------------------------------------ #
    # Repositories                                                         #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def get_repository_by_origin_id(self, origin_id: int) -> Repository | None:
        """Return the repository with this GitHub id, or None."""

    @abstractmethod
    def create_repository(
        self,
        origin_id: int,
        name: str,
        full_name: str,
        owner: str,
        user_id: int,
        private: bool = False,
    ) -> Repository:
        """Insert a repository. Raises DuplicateRecordError if origin_id is taken."""

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def get_pull_request_by_origin_id(self, origin_id: int) -> PullRequest | None:
        """Return the pull request with this GitHub id, or None."""

    @abstractmethod
    def create_pull_request(
        self, origin_id: int, number: int, title: str, state: str, repository_id: int
    ) -> PullRequest:
        """Insert a pull request.

        Raises DuplicateRecordError if origin_id is taken or the number is
        already used within the repository.
        """

    @abstractmethod
    def update_pull_request(self, pull_request_id: int, title: str, state: str) -> PullRequest:
        """Refresh the mutable attributes of an existing pull request."""

    # ------------------------------------------------------------------ #
    # Reviews and findings                                                 #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_review(self, pull_request_id: int, user_id: int, status: str = "pending") -> Review:
        """Insert a new review."""

    @abstractmethod
    def update_review(
        self,
        review_id: int,
        status: str | None = None,
        summary: str | None = None,
        score: int | None = None,
    ) -> Review:
        """Update only the given fields of a review and bump updated_at.

        A score, when given, is clamped into [1, 100].
        """

    @abstractmethod
    def create_finding(
        self,
        review_id: int,
        content: str,
        category: str,
        severity: str,
        file_path: str | None = None,
        line_number: int | None = None,
    ) -> Finding:
        """Attach a finding to a review."""

    @abstractmethod
    def get_review(self, review_id: int) -> ReviewDetail | None:
        """Return a review with its pull request, repository and findings, or None."""

    @abstractmethod
    def list_reviews(self, repo: str | None = None) -> list[ReviewDetail]:
        """Return all reviews newest first, optionally filtered by repository full name.

        Returns an empty list if no reviews exist; never raises for an empty store.
        """

    @abstractmethod
    def list_reviews_by_status(self, statuses: tuple[str, ...]) -> list[ReviewDetail]:
        """Return reviews whose status is one of `statuses`, oldest first."""

    def health_check(self) -> bool:
        """Return True when the backend is reachable. Default assumes it is."""
        return True

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional: subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
