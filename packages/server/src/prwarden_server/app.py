"""FastAPI application wiring.

Every collaborator (store, resolver, fetcher, analyzer, orchestrator, queue)
is built once here and handed to the routes through `app.state`, so tests can
inject fakes by calling create_app directly.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI

from prwarden_core.errors import QueueFullError
from prwarden_core.gh.fetcher import ChangeFetcher
from prwarden_core.orchestrator import ReviewOrchestrator
from prwarden_core.providers import build_analyzer
from prwarden_core.resolver import EntityResolver
from prwarden_core.work_queue import ReviewQueue
from prwarden_server import reviews, webhooks
from prwarden_store.base import BaseStore
from prwarden_store.sqlite import SQLiteStore

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    config: dict,
    store: BaseStore,
    orchestrator: ReviewOrchestrator,
    review_queue: ReviewQueue | None = None,
) -> FastAPI:
    """Assemble the HTTP app around already-built services.

    With review_queue set, webhook events are accepted in-request and
    processed by the queue's workers; without it the whole pipeline runs
    before the webhook responds.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if review_queue is not None:
            review_queue.start()
            _resubmit_unfinished(orchestrator, review_queue)
        try:
            yield
        finally:
            if review_queue is not None:
                review_queue.stop(timeout=30)
            store.close()

    app = FastAPI(
        title="prwarden",
        description="Webhook-driven AI code review for GitHub pull requests",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.orchestrator = orchestrator
    app.state.review_queue = review_queue

    app.include_router(webhooks.router, prefix="/api/v1/webhooks", tags=["Webhooks"])
    app.include_router(reviews.router, prefix="/api/v1/reviews", tags=["Reviews"])

    @app.get("/api/v1/status")
    def status():
        return {"message": "prwarden API is running", "version": VERSION}

    @app.get("/health")
    def health_check():
        healthy = store.health_check()
        return {
            "status": "OK" if healthy else "DEGRADED",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "prwarden",
        }

    return app


def _resubmit_unfinished(orchestrator: ReviewOrchestrator, review_queue: ReviewQueue) -> None:
    """Queue again every review a previous run accepted but never finished."""
    jobs = orchestrator.unfinished_jobs()
    if not jobs:
        return
    logger.info("Resubmitting %d unfinished review(s)", len(jobs))
    for i, job in enumerate(jobs):
        try:
            review_queue.submit(job)
        except QueueFullError:
            logger.warning("Queue full; %d unfinished review(s) left for the next start", len(jobs) - i)
            return


def build_app(config: dict) -> FastAPI:
    """Build every service from config and return the ready-to-serve app."""
    store = SQLiteStore(db_path=config["store_path"])
    fetcher = ChangeFetcher(
        token=config.get("github_token"),
        timeout=config["github_timeout"],
        max_diff_chars=config["max_diff_chars"],
        max_file_changes=config["max_file_changes"],
    )
    orchestrator = ReviewOrchestrator(
        store=store,
        resolver=EntityResolver(store),
        fetcher=fetcher,
        analyzer=build_analyzer(config),
    )
    review_queue = None
    if config.get("async_processing", True):
        review_queue = ReviewQueue(
            orchestrator,
            maxsize=config["queue_size"],
            workers=config["workers"],
            enqueue_timeout=config["enqueue_timeout"],
        )
    if not config.get("require_signature", True):
        logger.warning("Webhook signature verification is disabled")
    return create_app(config, store, orchestrator, review_queue)
