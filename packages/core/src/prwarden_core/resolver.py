"""Idempotent mapping of GitHub identities to stored entities.

Every ensure_* call is a get-or-create keyed strictly on the GitHub id. The
store's unique constraints are the real guard against duplicate deliveries
racing each other: when an insert collides we assume a concurrent delivery
won, and read its row back once.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from prwarden_store.base import BaseStore, DuplicateRecordError
from prwarden_store.models import PullRequest, Repository, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityResolver:
    def __init__(self, store: BaseStore):
        self.store = store

    def _get_or_create(self, kind: str, key, lookup: Callable[[], T | None], create: Callable[[], T]) -> T:
        existing = lookup()
        if existing is not None:
            return existing
        try:
            created = create()
            logger.info("Created new %s: %s", kind, key)
            return created
        except DuplicateRecordError:
            logger.debug("Concurrent insert for %s %s; re-reading", kind, key)
            existing = lookup()
            if existing is None:
                raise
            return existing

    def ensure_user(self, origin_id: str, login: str, avatar_url: str | None = None) -> User:
        return self._get_or_create(
            "user",
            login,
            lambda: self.store.get_user_by_origin_id(origin_id),
            lambda: self.store.create_user(
                origin_id=origin_id,
                name=login,
                # Keyed on the id too: GitHub logins can be released and reclaimed.
                email=f"{origin_id}+{login}@github.local",
                avatar_url=avatar_url,
            ),
        )

    def ensure_repository(
        self,
        origin_id: int,
        name: str,
        full_name: str,
        owner: str,
        private: bool,
        user: User,
    ) -> Repository:
        return self._get_or_create(
            "repository",
            full_name,
            lambda: self.store.get_repository_by_origin_id(origin_id),
            lambda: self.store.create_repository(
                origin_id=origin_id,
                name=name,
                full_name=full_name,
                owner=owner,
                user_id=user.id,
                private=private,
            ),
        )

    def ensure_pull_request(
        self,
        origin_id: int,
        number: int,
        title: str,
        state: str,
        repository: Repository,
    ) -> PullRequest:
        """Return the stored pull request, creating it on first sight.

        A pull request seen again with a new title or state is refreshed in
        place so the dashboard never shows a stale title.
        """
        pr = self._get_or_create(
            "pull request",
            f"#{number}",
            lambda: self.store.get_pull_request_by_origin_id(origin_id),
            lambda: self.store.create_pull_request(
                origin_id=origin_id,
                number=number,
                title=title,
                state=state,
                repository_id=repository.id,
            ),
        )
        if pr.title != title or pr.state != state:
            logger.info("Refreshing pull request #%d: state=%s", number, state)
            pr = self.store.update_pull_request(pr.id, title=title, state=state)
        return pr
