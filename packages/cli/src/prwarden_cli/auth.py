"""GitHub token resolution for the change fetcher.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (deployments, CI)
  2. `gh auth token` (a developer running the server locally after `gh auth login`)

Without either, the fetcher falls back to unauthenticated, rate-limited requests.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None. Never raises."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode == 0 and result.stdout.strip():
        logger.debug("Resolved GitHub token via gh CLI session.")
        return result.stdout.strip()
    return None
