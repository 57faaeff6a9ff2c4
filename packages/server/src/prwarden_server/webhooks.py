"""GitHub webhook endpoint.

The signature is checked against the raw request body before anything is
parsed. Unsupported events and ignored pull_request actions are acknowledged
with 200 so GitHub does not flag the hook as failing.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool

from prwarden_core.errors import AuthenticationError, QueueFullError, ValidationError
from prwarden_core.events import PullRequestEvent
from prwarden_core.signature import require_signature

logger = logging.getLogger(__name__)

router = APIRouter()

SUPPORTED_EVENTS = ["pull_request", "ping"]


@router.post("/github")
async def github_webhook(request: Request):
    state = request.app.state
    config: dict = state.config

    event = request.headers.get("X-GitHub-Event")
    delivery_id = request.headers.get("X-GitHub-Delivery")
    logger.info("Received GitHub webhook: event=%s delivery=%s", event, delivery_id)

    raw_body = await request.body()

    if config.get("require_signature", True):
        try:
            require_signature(raw_body, request.headers.get("X-Hub-Signature-256"), config.get("webhook_secret", ""))
        except AuthenticationError as e:
            logger.error("Invalid webhook signature (delivery=%s): %s", delivery_id, e)
            return JSONResponse(status_code=401, content={"error": "Invalid signature"})

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Rejecting undecodable webhook body (delivery=%s): %s", delivery_id, e)
        return JSONResponse(status_code=400, content={"error": "Invalid JSON payload"})

    if event == "ping":
        logger.info("Received ping event - webhook is connected!")
        zen = payload.get("zen") if isinstance(payload, dict) else None
        return {"message": "prwarden webhook is active", "zen": zen}

    if event != "pull_request":
        logger.info("Unsupported event type: %s", event)
        return {"message": "Event type not supported"}

    try:
        pr_event = PullRequestEvent.from_payload(payload)
        review_id = await run_in_threadpool(_dispatch, state, pr_event)
    except ValidationError as e:
        logger.warning("Rejecting pull_request event (delivery=%s): %s", delivery_id, e)
        return JSONResponse(status_code=400, content={"error": "Invalid payload", "message": str(e)})
    except QueueFullError as e:
        return JSONResponse(status_code=503, content={"error": "Service unavailable", "message": str(e)})
    except Exception as e:
        logger.exception("Webhook processing error (delivery=%s)", delivery_id)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(e)})

    if review_id is None:
        return {"message": f"Action '{pr_event.action}' ignored", "event": event, "deliveryId": delivery_id}

    return {
        "message": "Webhook processed successfully",
        "event": event,
        "deliveryId": delivery_id,
        "reviewId": review_id,
    }


def _dispatch(state, event: PullRequestEvent) -> int | None:
    """Accept the event, then queue it or process it inline. Returns the review id."""
    orchestrator = state.orchestrator
    review_queue = getattr(state, "review_queue", None)

    if review_queue is None:
        review = orchestrator.handle(event)
        return review.id if review else None

    job = orchestrator.accept(event)
    if job is None:
        return None
    try:
        review_queue.submit(job)
    except QueueFullError as e:
        orchestrator.store.update_review(job.review_id, status="failed", summary=f"Analysis failed: {e}")
        raise
    return job.review_id


@router.get("/health")
def webhook_health():
    return {
        "message": "Webhook endpoint is healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "supportedEvents": SUPPORTED_EVENTS,
    }
