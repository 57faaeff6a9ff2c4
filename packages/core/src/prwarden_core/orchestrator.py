"""Review pipeline orchestration.

Review lifecycle:

    pending ──► processing ──► completed
                     │
                     └──────► failed

`accept` runs inside the webhook request: it resolves the GitHub entities and
records a pending review, so the event is durable before it is acknowledged.
`process` does the slow part (GitHub fetch, model call) and may run on a
queue worker. `handle` chains both for callers that want the whole pipeline
inline.

Duplicate deliveries of the same event each get their own review. Every
delivery is treated as an independent trigger; only the user, repository and
pull request rows are deduplicated.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from prwarden_core.events import PullRequestEvent
from prwarden_core.gh.fetcher import ChangeFetcher
from prwarden_core.providers.base import BaseAnalyzer
from prwarden_core.resolver import EntityResolver
from prwarden_store.base import BaseStore
from prwarden_store.models import Review

logger = logging.getLogger(__name__)

NO_CHANGES_SUMMARY = "No code changes detected in this pull request."
NO_CHANGES_SCORE = 100
UNFINISHED_STATUSES = ("pending", "processing")


@dataclass(frozen=True)
class ReviewJob:
    """Everything process() needs to run one review without the original payload."""

    review_id: int
    owner: str
    repo: str
    pr_number: int

    @property
    def label(self) -> str:
        return f"{self.owner}/{self.repo}#{self.pr_number}"


class ReviewOrchestrator:
    def __init__(
        self,
        store: BaseStore,
        resolver: EntityResolver,
        fetcher: ChangeFetcher,
        analyzer: BaseAnalyzer,
    ):
        self.store = store
        self.resolver = resolver
        self.fetcher = fetcher
        self.analyzer = analyzer

    def accept(self, event: PullRequestEvent) -> ReviewJob | None:
        """Resolve entities and create a pending review for a reviewable event.

        Returns None, touching nothing, for actions other than opened and
        synchronize.
        """
        logger.info(
            "Received PR %s event: %s#%d (%s)",
            event.action,
            event.repo_full_name,
            event.pr_number,
            event.pr_title,
        )
        if not event.is_reviewable:
            logger.info("Skipping action: %s", event.action)
            return None

        user = self.resolver.ensure_user(event.sender_id, event.sender_login, event.sender_avatar_url)
        repository = self.resolver.ensure_repository(
            origin_id=event.repo_id,
            name=event.repo_name,
            full_name=event.repo_full_name,
            owner=event.repo_owner,
            private=event.repo_private,
            user=user,
        )
        pull_request = self.resolver.ensure_pull_request(
            origin_id=event.pr_id,
            number=event.pr_number,
            title=event.pr_title,
            state=event.pr_state,
            repository=repository,
        )
        review = self.store.create_review(pull_request_id=pull_request.id, user_id=user.id, status="pending")

        owner, name = event.owner_and_name
        return ReviewJob(review_id=review.id, owner=owner, repo=name, pr_number=event.pr_number)

    def process(self, job: ReviewJob) -> Review:
        """Fetch, analyze and persist one review, driving it to a terminal status.

        On any exception the review is marked failed with the error message as
        its summary and the exception is re-raised.
        """
        logger.info("Starting code analysis for PR %s", job.label)
        self.store.update_review(job.review_id, status="processing")

        try:
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="prwarden-fetch") as pool:
                details_future = pool.submit(self.fetcher.fetch_details, job.owner, job.repo, job.pr_number)
                diff_future = pool.submit(self.fetcher.fetch_diff, job.owner, job.repo, job.pr_number)
                details = details_future.result()
                diff = diff_future.result()

            if not diff.content.strip():
                logger.info("No code changes found for %s, marking as completed", job.label)
                return self.store.update_review(
                    job.review_id,
                    status="completed",
                    summary=NO_CHANGES_SUMMARY,
                    score=NO_CHANGES_SCORE,
                )

            logger.info("Analyzing %d file(s) for %s", len(diff.files), job.label)
            analysis = self.analyzer.analyze(diff.content, details.title)

            review = self.store.update_review(
                job.review_id,
                status="completed",
                summary=analysis.summary,
                score=analysis.score,
            )
            for finding in analysis.findings:
                self.store.create_finding(
                    review_id=job.review_id,
                    content=finding.content,
                    category=finding.type,
                    severity=finding.severity,
                    file_path=finding.file_path,
                    line_number=finding.line_number,
                )
        except Exception as e:
            logger.error("Analysis failed for PR %s: %s", job.label, e)
            try:
                self.store.update_review(job.review_id, status="failed", summary=f"Analysis failed: {e}")
            except Exception:
                logger.exception("Could not mark review %d as failed", job.review_id)
            raise

        logger.info(
            "Analysis completed for PR %s. Score: %d, findings: %d",
            job.label,
            review.score,
            len(analysis.findings),
        )
        return review

    def unfinished_jobs(self) -> list[ReviewJob]:
        """Rebuild jobs for reviews left pending or processing by a previous run.

        Oldest first. A worker that died mid-review leaves its review in
        processing; both states are safe to run again.
        """
        jobs = []
        for detail in self.store.list_reviews_by_status(UNFINISHED_STATUSES):
            owner, _, name = detail.repository.full_name.partition("/")
            jobs.append(
                ReviewJob(
                    review_id=detail.review.id,
                    owner=owner,
                    repo=name,
                    pr_number=detail.pull_request.number,
                )
            )
        return jobs

    def handle(self, event: PullRequestEvent) -> Review | None:
        """Run accept and process back to back."""
        job = self.accept(event)
        if job is None:
            return None
        return self.process(job)
