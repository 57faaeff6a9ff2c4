"""Error kinds raised by the review pipeline.

Transport-level failures (GitHub, the language model) and authentication or
payload problems are surfaced to the webhook caller. Response-format problems
from the model never leave the analyzer; they are absorbed into a fallback
result.
"""

from __future__ import annotations


class PrwardenError(Exception):
    """Base class for every error raised by prwarden_core."""


class AuthenticationError(PrwardenError):
    """The webhook signature was missing, malformed or did not match."""


class ValidationError(PrwardenError):
    """The event payload is malformed or names an unusable repository."""


class OriginFetchError(PrwardenError):
    """Talking to GitHub failed. The underlying exception is chained as __cause__."""


class AnalysisTransportError(PrwardenError):
    """The language-model call itself failed (network, auth, timeout)."""


class AnalysisFormatError(PrwardenError):
    """The model answered but the answer could not be parsed into a verdict."""


class QueueFullError(PrwardenError):
    """The review work queue stayed full for longer than the enqueue timeout."""
