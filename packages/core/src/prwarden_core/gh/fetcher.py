"""Fetching pull request change-sets from GitHub.

Two calls per review: the PR metadata and the list of changed files. The file
list is paginated by GitHub; PyGithub's PaginatedList hides that and we
iterate it to the end, so callers see one flat sequence. Nothing here retries:
a failure is wrapped into OriginFetchError and the orchestrator decides what
happens to the review.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests
from github import Github, GithubException

from prwarden_core.errors import OriginFetchError
from prwarden_core.utils.code import is_binary_file

logger = logging.getLogger(__name__)

USER_AGENT = "prwarden-code-review/1.0"
MAX_DIFF_CHARS = 50_000
MAX_FILE_CHANGES = 1_000
TRUNCATION_MARKER = "\n\n... (diff truncated due to size)"


@dataclass
class ChangedFile:
    path: str
    status: str
    additions: int
    deletions: int
    patch: str | None = None


@dataclass
class PullRequestDiff:
    content: str
    files: list[ChangedFile] = field(default_factory=list)


@dataclass
class PullRequestDetails:
    title: str
    body: str
    state: str
    head_ref: str
    base_ref: str
    head_sha: str = ""
    base_sha: str = ""


def _change_count(file) -> int | None:
    """Return additions + deletions, or None when GitHub sent unusable numbers."""
    additions = getattr(file, "additions", None)
    deletions = getattr(file, "deletions", None)
    for value in (additions, deletions):
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            return None
    return additions + deletions


def build_diff(files, max_chars: int = MAX_DIFF_CHARS, max_changes: int = MAX_FILE_CHANGES) -> PullRequestDiff:
    """Filter GitHub file entries and join their patches into one reviewable blob.

    Kept separate from the network calls so the filtering policy can be
    tested against plain objects.
    """
    kept: list[ChangedFile] = []
    for f in files:
        filename = f.filename
        if f.status == "removed":
            continue
        changes = _change_count(f)
        if changes is None:
            logger.warning("Skipping file with malformed size metadata: %s", filename)
            continue
        if changes > max_changes:
            logger.info("Skipping large file: %s (%d changes)", filename, changes)
            continue
        if is_binary_file(filename):
            logger.info("Skipping binary file: %s", filename)
            continue
        kept.append(
            ChangedFile(
                path=filename,
                status=f.status,
                additions=f.additions,
                deletions=f.deletions,
                patch=f.patch,
            )
        )

    parts = []
    for f in kept:
        if f.patch:
            parts.append(f"\n--- a/{f.path}\n+++ b/{f.path}\n{f.patch}\n")
    content = "".join(parts)

    if len(content) > max_chars:
        logger.info("Truncating large diff (%d chars) to %d", len(content), max_chars)
        content = content[:max_chars] + TRUNCATION_MARKER

    return PullRequestDiff(content=content, files=kept)


class ChangeFetcher:
    """Reads pull request data from GitHub through PyGithub.

    `client` may be any object with PyGithub's `get_repo`. Tests pass a
    MagicMock; production code lets the fetcher build its own Github client.
    """

    def __init__(
        self,
        token: str | None = None,
        timeout: int = 30,
        max_diff_chars: int = MAX_DIFF_CHARS,
        max_file_changes: int = MAX_FILE_CHANGES,
        client=None,
    ):
        if client is None:
            if not token:
                logger.warning("GITHUB_TOKEN not provided - using unauthenticated requests (rate limited)")
            client = Github(token, timeout=timeout, user_agent=USER_AGENT)
        self._gh = client
        self.max_diff_chars = max_diff_chars
        self.max_file_changes = max_file_changes

    def _get_pull(self, owner: str, repo: str, pr_number: int):
        return self._gh.get_repo(f"{owner}/{repo}").get_pull(pr_number)

    def fetch_diff(self, owner: str, repo: str, pr_number: int) -> PullRequestDiff:
        logger.info("Fetching PR diff for %s/%s#%d", owner, repo, pr_number)
        try:
            # list() drains every page inside the try so paging errors are wrapped too.
            files = list(self._get_pull(owner, repo, pr_number).get_files())
        except (GithubException, requests.RequestException) as e:
            logger.error("Failed to fetch PR diff for %s/%s#%d: %s", owner, repo, pr_number, e)
            raise OriginFetchError(f"GitHub API error: {e}") from e
        return build_diff(files, max_chars=self.max_diff_chars, max_changes=self.max_file_changes)

    def fetch_details(self, owner: str, repo: str, pr_number: int) -> PullRequestDetails:
        try:
            pr = self._get_pull(owner, repo, pr_number)
            return PullRequestDetails(
                title=pr.title or "",
                body=pr.body or "",
                state=pr.state,
                head_ref=pr.head.ref,
                base_ref=pr.base.ref,
                head_sha=pr.head.sha,
                base_sha=pr.base.sha,
            )
        except (GithubException, requests.RequestException) as e:
            logger.error("Failed to fetch PR details for %s/%s#%d: %s", owner, repo, pr_number, e)
            raise OriginFetchError(f"GitHub API error: {e}") from e
