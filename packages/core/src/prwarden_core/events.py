"""Typed views over GitHub `pull_request` webhook payloads."""

from __future__ import annotations

from dataclasses import dataclass

from prwarden_core.errors import ValidationError

# Only these actions change the code under review.
REVIEWABLE_ACTIONS = frozenset({"opened", "synchronize"})


@dataclass(frozen=True)
class PullRequestEvent:
    action: str
    sender_id: str
    sender_login: str
    sender_avatar_url: str | None
    repo_id: int
    repo_name: str
    repo_full_name: str
    repo_owner: str
    repo_private: bool
    pr_id: int
    pr_number: int
    pr_title: str
    pr_state: str

    @property
    def is_reviewable(self) -> bool:
        return self.action in REVIEWABLE_ACTIONS

    @property
    def owner_and_name(self) -> tuple[str, str]:
        owner, _, name = self.repo_full_name.partition("/")
        return owner, name

    @classmethod
    def from_payload(cls, payload: dict) -> PullRequestEvent:
        """Build an event from a decoded webhook body.

        Raises ValidationError when a required field is missing or has the
        wrong shape, or when the repository full name is not `owner/name`.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Event payload must be a JSON object")
        try:
            pr = payload["pull_request"]
            repo = payload["repository"]
            sender = payload["sender"]
            event = cls(
                action=str(payload["action"]),
                sender_id=str(sender["id"]),
                sender_login=str(sender["login"]),
                sender_avatar_url=sender.get("avatar_url"),
                repo_id=int(repo["id"]),
                repo_name=str(repo["name"]),
                repo_full_name=str(repo["full_name"]),
                repo_owner=str(repo["owner"]["login"]),
                repo_private=bool(repo.get("private", False)),
                pr_id=int(pr["id"]),
                pr_number=int(pr["number"]),
                pr_title=str(pr.get("title") or ""),
                pr_state=str(pr.get("state") or "open"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed pull_request payload: {e!r}") from e

        owner, name = event.owner_and_name
        if not owner or not name or "/" in name:
            raise ValidationError(f"Invalid repository format: {event.repo_full_name}")
        return event
