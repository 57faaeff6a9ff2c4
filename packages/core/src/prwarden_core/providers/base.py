"""Base analyzer implementing the Template Method pattern.

All providers share the same analysis algorithm:
    analyze() → _build_system_prompt() + _build_user_prompt()
              → _call_api()   ← only this differs per provider
              → parse_analysis()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Failure policy is split on purpose. Anything raised by _call_api is a
transport problem and becomes AnalysisTransportError so the review is marked
failed. A response that arrives but cannot be parsed is replaced by a fixed
fallback verdict so the review still completes.
"""

from __future__ import annotations

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from prwarden_core.errors import AnalysisFormatError, AnalysisTransportError
from prwarden_store.models import FINDING_CATEGORIES, FINDING_SEVERITIES, clamp_score

logger = logging.getLogger(__name__)

MAX_FINDINGS = 8

_FENCED_OBJECT_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
_BARE_OBJECT_RE = re.compile(r"(\{[\s\S]*\})")

FALLBACK_SUMMARY = "AI analysis completed but response format was invalid. Manual review recommended."
FALLBACK_SCORE = 75
FALLBACK_FINDING = "AI analysis encountered a parsing error. Please review changes manually."


@dataclass
class AnalysisFinding:
    content: str
    type: str
    severity: str
    file_path: str | None = None
    line_number: int | None = None


@dataclass
class AnalysisResult:
    summary: str
    score: int
    findings: list[AnalysisFinding] = field(default_factory=list)


def fallback_result() -> AnalysisResult:
    return AnalysisResult(
        summary=FALLBACK_SUMMARY,
        score=FALLBACK_SCORE,
        findings=[AnalysisFinding(content=FALLBACK_FINDING, type="logic", severity="medium")],
    )


def _extract_json(raw: str):
    match = _FENCED_OBJECT_RE.search(raw) or _BARE_OBJECT_RE.search(raw)
    text = match.group(1) if match else raw
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisFormatError(f"Response is not valid JSON: {e}") from e


def _normalize_finding(item) -> AnalysisFinding | None:
    if not isinstance(item, dict):
        return None
    content = item.get("content")
    if not isinstance(content, str) or not content.strip():
        return None

    category = item.get("type")
    if category not in FINDING_CATEGORIES:
        category = "best-practice"
    severity = item.get("severity")
    if severity not in FINDING_SEVERITIES:
        severity = "medium"

    file_path = item.get("filePath")
    if not isinstance(file_path, str) or not file_path:
        file_path = None
    line_number = item.get("lineNumber")
    if not isinstance(line_number, int) or isinstance(line_number, bool) or line_number < 1:
        line_number = None

    return AnalysisFinding(
        content=content,
        type=category,
        severity=severity,
        file_path=file_path,
        line_number=line_number,
    )


def parse_analysis(raw: str) -> AnalysisResult:
    """Parse a model response into an AnalysisResult.

    Looks for a fenced ```json block first, then any brace-delimited object,
    then tries the whole text. Raises AnalysisFormatError when nothing usable
    is found or the object lacks a summary string, a numeric score or a
    comments array.
    """
    if not raw or not raw.strip():
        raise AnalysisFormatError("Empty response")
    parsed = _extract_json(raw)

    if not isinstance(parsed, dict):
        raise AnalysisFormatError("Response is not a JSON object")
    summary = parsed.get("summary")
    score = parsed.get("score")
    comments = parsed.get("comments")
    if not isinstance(summary, str) or not summary:
        raise AnalysisFormatError("Missing summary")
    if not isinstance(score, (int, float)) or isinstance(score, bool):
        raise AnalysisFormatError("Missing numeric score")
    if isinstance(score, float) and not math.isfinite(score):
        raise AnalysisFormatError(f"Score is not finite: {score}")
    if not isinstance(comments, list):
        raise AnalysisFormatError("Missing comments array")

    findings = [f for f in (_normalize_finding(c) for c in comments) if f is not None]
    return AnalysisResult(summary=summary, score=clamp_score(score), findings=findings[:MAX_FINDINGS])


class BaseAnalyzer(ABC):
    MAX_TOKENS: int = 2000
    TEMPERATURE: float = 0.3

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def analyze(self, diff_text: str, pr_title: str) -> AnalysisResult:
        """Review a whole pull request diff and return the structured verdict.

        Concrete here because the algorithm is identical for every provider.
        Raises AnalysisTransportError when the provider call fails; never
        raises for a malformed response.
        """
        logger.info("Starting AI analysis for PR: %s", pr_title)
        system = self._build_system_prompt()
        user = self._build_user_prompt(diff_text, pr_title)
        try:
            raw = self._call_api(system, user)
        except Exception as e:
            logger.error("%s API call failed: %s", self.__class__.__name__, e)
            raise AnalysisTransportError(f"AI analysis failed: {e}") from e

        try:
            return parse_analysis(raw)
        except AnalysisFormatError as e:
            logger.warning(
                "%s: failed to parse analysis (%s): %s",
                self.__class__.__name__,
                e,
                (raw or "")[:200],
            )
            return fallback_result()

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; analyze() classifies the exception.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _build_system_prompt(self) -> str:
        return (
            "You are an expert code reviewer with deep knowledge of software engineering best practices, "
            "security, performance optimization, and clean code principles."
        )

    def _build_user_prompt(self, diff_text: str, pr_title: str) -> str:
        return f"""Please analyze this pull request and provide a comprehensive code review.

PR Title: {pr_title}

Code Changes:
```diff
{diff_text}
```

Respond with **only** a valid JSON object in the following format:
{{
  "summary": "Brief overall assessment of the changes",
  "score": 85,
  "comments": [
    {{
      "content": "Specific feedback about the code",
      "type": "security|performance|style|logic|best-practice",
      "severity": "low|medium|high",
      "filePath": "path/to/file.py",
      "lineNumber": 42
    }}
  ]
}}

Focus on:
1. Security vulnerabilities or concerns
2. Performance implications
3. Code style and maintainability
4. Logic errors or potential bugs
5. Best practices and design patterns

Provide constructive, specific feedback. Score must be an integer from 1 to 100 based on code quality.
Be concise but thorough. Limit to a maximum of {MAX_FINDINGS} comments for readability."""
