import copy
import json

import pytest
from fastapi.testclient import TestClient

from prwarden_core.config import DEFAULT_CONFIG
from prwarden_core.gh.fetcher import PullRequestDetails, PullRequestDiff
from prwarden_core.orchestrator import ReviewOrchestrator
from prwarden_core.providers.base import AnalysisFinding, AnalysisResult, BaseAnalyzer
from prwarden_core.resolver import EntityResolver
from prwarden_core.signature import compute_signature
from prwarden_server.app import create_app
from prwarden_store.memory import MemoryStore

SECRET = "test-webhook-secret"

PR_PAYLOAD = {
    "action": "opened",
    "number": 7,
    "pull_request": {"id": 5001, "number": 7, "title": "Add widgets", "state": "open"},
    "repository": {
        "id": 901,
        "name": "widgets",
        "full_name": "octo/widgets",
        "owner": {"login": "octo"},
        "private": False,
    },
    "sender": {"id": 42, "login": "octocat", "avatar_url": None},
}


class FakeFetcher:
    def __init__(self):
        self.content = "\n--- a/app.py\n+++ b/app.py\n@@ -1 +1,2 @@\n x = 1\n+y = 2\n"
        self.error = None

    def fetch_details(self, owner, repo, number):
        return PullRequestDetails(title="Add widgets", body="", state="open", head_ref="feature", base_ref="main")

    def fetch_diff(self, owner, repo, number):
        if self.error:
            raise self.error
        return PullRequestDiff(content=self.content, files=[])


class FakeAnalyzer(BaseAnalyzer):
    def analyze(self, diff_text, pr_title):
        return AnalysisResult(
            summary="Small, safe change.",
            score=91,
            findings=[AnalysisFinding("Name y more clearly.", "style", "low", "app.py", 2)],
        )

    def _call_api(self, system_prompt, user_prompt):
        raise NotImplementedError


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def orchestrator(store, fetcher):
    return ReviewOrchestrator(store=store, resolver=EntityResolver(store), fetcher=fetcher, analyzer=FakeAnalyzer())


@pytest.fixture
def config():
    return {**DEFAULT_CONFIG, "webhook_secret": SECRET}


@pytest.fixture
def client(config, store, orchestrator):
    return TestClient(create_app(config, store, orchestrator))


@pytest.fixture
def pr_payload():
    return copy.deepcopy(PR_PAYLOAD)


@pytest.fixture
def deliver():
    """POST a webhook the way GitHub does: raw JSON bytes plus a signature header."""

    def _deliver(client, payload, event="pull_request", secret=SECRET, signature=None, delivery="d-1"):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        headers = {"X-GitHub-Event": event, "X-GitHub-Delivery": delivery, "Content-Type": "application/json"}
        if signature is None and secret is not None:
            signature = compute_signature(body, secret)
        if signature is not None:
            headers["X-Hub-Signature-256"] = signature
        return client.post("/api/v1/webhooks/github", content=body, headers=headers)

    return _deliver
