"""Tests for analyzer implementations.

Shared behaviour (parsing, prompts, error classification) lives in
BaseAnalyzer and is tested once via a lightweight stub, not duplicated per
provider. Provider-specific tests cover only what differs between
implementations: the SDK client setup and _call_api.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from prwarden_core.errors import AnalysisFormatError, AnalysisTransportError
from prwarden_core.providers import build_analyzer
from prwarden_core.providers.anthropic import AnthropicAnalyzer
from prwarden_core.providers.base import (
    FALLBACK_SCORE,
    FALLBACK_SUMMARY,
    MAX_FINDINGS,
    BaseAnalyzer,
    parse_analysis,
)
from prwarden_core.providers.openai import OpenAIAnalyzer

VERDICT = {
    "summary": "Solid change with one risky query.",
    "score": 82,
    "comments": [
        {
            "content": "User input is concatenated into SQL.",
            "type": "security",
            "severity": "high",
            "filePath": "app/db.py",
            "lineNumber": 14,
        },
        {"content": "Consider a docstring.", "type": "style", "severity": "low"},
    ],
}
VALID_JSON = json.dumps(VERDICT)


class _StubAnalyzer(BaseAnalyzer):
    """Minimal concrete subclass returning a canned response."""

    def __init__(self, response=VALID_JSON):
        self.response = response
        self.calls = []

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _assert_is_fallback(result):
    assert result.summary == FALLBACK_SUMMARY
    assert result.score == FALLBACK_SCORE
    assert len(result.findings) == 1
    assert result.findings[0].type == "logic"
    assert result.findings[0].severity == "medium"
    assert "parsing error" in result.findings[0].content


# ---------------------------------------------------------------------------
# Shared behaviour, tested once through the stub, not per provider
# ---------------------------------------------------------------------------


class TestParse:
    def test_parses_plain_json(self):
        result = parse_analysis(VALID_JSON)
        assert result.summary == VERDICT["summary"]
        assert result.score == 82
        assert len(result.findings) == 2
        first = result.findings[0]
        assert (first.type, first.severity, first.file_path, first.line_number) == (
            "security",
            "high",
            "app/db.py",
            14,
        )
        assert result.findings[1].file_path is None
        assert result.findings[1].line_number is None

    def test_extracts_fenced_block(self):
        raw = f"Here is my review:\n```json\n{VALID_JSON}\n```\nThanks!"
        result = parse_analysis(raw)
        assert result.summary == VERDICT["summary"]
        assert result.score == 82
        assert [f.content for f in result.findings] == [c["content"] for c in VERDICT["comments"]]

    def test_extracts_bare_object_from_prose(self):
        raw = f"Sure! {VALID_JSON} Let me know if you need more."
        assert parse_analysis(raw).score == 82

    @pytest.mark.parametrize("score, expected", [(250, 100), (0, 1), (-40, 1), (77.4, 77)])
    def test_score_clamped_and_integral(self, score, expected):
        raw = json.dumps({**VERDICT, "score": score})
        result = parse_analysis(raw)
        assert result.score == expected
        assert isinstance(result.score, int)

    @pytest.mark.parametrize(
        "payload",
        [
            {"score": 80, "comments": []},
            {"summary": "", "score": 80, "comments": []},
            {"summary": "ok", "score": "80", "comments": []},
            {"summary": "ok", "score": True, "comments": []},
            {"summary": "ok", "score": 80},
            {"summary": "ok", "score": 80, "comments": "none"},
        ],
    )
    def test_invalid_structure_raises(self, payload):
        with pytest.raises(AnalysisFormatError):
            parse_analysis(json.dumps(payload))

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity", "1e400"])
    def test_non_finite_score_raises(self, literal):
        with pytest.raises(AnalysisFormatError, match="not finite"):
            parse_analysis('{"summary": "ok", "score": ' + literal + ', "comments": []}')

    def test_huge_integer_score_clamped(self):
        assert parse_analysis('{"summary": "ok", "score": ' + "9" * 400 + ', "comments": []}').score == 100

    @pytest.mark.parametrize("raw", ["", "   ", "not json at all", "{broken", "[1, 2, 3]"])
    def test_unparseable_raises(self, raw):
        with pytest.raises(AnalysisFormatError):
            parse_analysis(raw)

    def test_unknown_category_and_severity_normalised(self):
        raw = json.dumps(
            {"summary": "ok", "score": 90, "comments": [{"content": "x", "type": "naming", "severity": "critical"}]}
        )
        finding = parse_analysis(raw).findings[0]
        assert finding.type == "best-practice"
        assert finding.severity == "medium"

    def test_comments_without_content_dropped(self):
        raw = json.dumps(
            {"summary": "ok", "score": 90, "comments": [{"type": "logic"}, "text", {"content": "  "}, {"content": "real"}]}
        )
        assert [f.content for f in parse_analysis(raw).findings] == ["real"]

    @pytest.mark.parametrize("line", [0, -1, "12", 3.5, True])
    def test_invalid_line_number_dropped(self, line):
        raw = json.dumps({"summary": "ok", "score": 90, "comments": [{"content": "x", "lineNumber": line}]})
        assert parse_analysis(raw).findings[0].line_number is None

    def test_findings_capped(self):
        comments = [{"content": f"issue {i}", "type": "style", "severity": "low"} for i in range(12)]
        raw = json.dumps({"summary": "ok", "score": 60, "comments": comments})
        assert len(parse_analysis(raw).findings) == MAX_FINDINGS


class TestAnalyze:
    def test_returns_parsed_result(self):
        result = _StubAnalyzer().analyze("+x = 1", "Add x")
        assert result.score == 82
        assert len(result.findings) == 2

    def test_malformed_response_returns_fallback(self):
        _assert_is_fallback(_StubAnalyzer("I think the code is fine!").analyze("+x", "t"))

    def test_empty_response_returns_fallback(self):
        _assert_is_fallback(_StubAnalyzer("").analyze("+x", "t"))

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity", "1e400"])
    def test_non_finite_score_returns_fallback(self, literal):
        raw = '{"summary": "ok", "score": ' + literal + ', "comments": []}'
        _assert_is_fallback(_StubAnalyzer(raw).analyze("+x", "t"))

    def test_transport_error_is_not_a_fallback(self):
        cause = ConnectionError("connection reset")
        analyzer = _StubAnalyzer(cause)
        with pytest.raises(AnalysisTransportError, match="connection reset") as exc_info:
            analyzer.analyze("+x", "t")
        assert exc_info.value.__cause__ is cause

    def test_called_once(self):
        analyzer = _StubAnalyzer(RuntimeError("503"))
        with pytest.raises(AnalysisTransportError):
            analyzer.analyze("+x", "t")
        assert len(analyzer.calls) == 1


class TestPrompts:
    def test_user_prompt_contains_title_and_diff(self):
        analyzer = _StubAnalyzer()
        analyzer.analyze("+added line", "Fix auth bug")
        _, user = analyzer.calls[0]
        assert "Fix auth bug" in user
        assert "+added line" in user

    def test_user_prompt_describes_output_schema(self):
        prompt = _StubAnalyzer()._build_user_prompt("", "")
        for key in ('"summary"', '"score"', '"comments"', '"filePath"', '"lineNumber"'):
            assert key in prompt
        assert f"maximum of {MAX_FINDINGS} comments" in prompt

    def test_system_prompt_sets_reviewer_persona(self):
        assert "code reviewer" in _StubAnalyzer()._build_system_prompt()


# ---------------------------------------------------------------------------
# Provider-specific: only what differs between OpenAI and Anthropic
# ---------------------------------------------------------------------------


class TestOpenAIAnalyzer:
    def test_raises_import_error_without_sdk(self):
        import prwarden_core.providers.openai as openai_mod

        real_openai = openai_mod._OpenAI
        openai_mod._OpenAI = None
        try:
            with pytest.raises(ImportError):
                OpenAIAnalyzer(api_key="key")
        finally:
            openai_mod._OpenAI = real_openai

    def test_default_model(self):
        assert OpenAIAnalyzer.MODEL == "gpt-4o-mini"

    def test_call_api_uses_configured_model(self, mocker):
        client_cls = mocker.patch("prwarden_core.providers.openai._OpenAI")
        client = client_cls.return_value
        client.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content=VALID_JSON))]
        )

        analyzer = OpenAIAnalyzer(api_key="key", model="gpt-4o", timeout=9)
        assert analyzer.analyze("+x", "t").score == 82

        client_cls.assert_called_once_with(api_key="key", timeout=9, max_retries=0)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"][0]["role"] == "system"

    def test_none_content_becomes_fallback(self, mocker):
        client_cls = mocker.patch("prwarden_core.providers.openai._OpenAI")
        client_cls.return_value.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content=None))]
        )
        _assert_is_fallback(OpenAIAnalyzer(api_key="key").analyze("+x", "t"))


class TestAnthropicAnalyzer:
    def test_raises_import_error_without_sdk(self):
        with patch.dict("sys.modules", {"anthropic": None}):
            with pytest.raises(ImportError):
                AnthropicAnalyzer(api_key="key")

    def test_model_is_claude(self):
        assert "claude" in AnthropicAnalyzer.MODEL


class TestBuildAnalyzer:
    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError, match="Unknown model provider"):
            build_analyzer({"model": "llama"})

    def test_openai_selected(self, mocker):
        mocker.patch("prwarden_core.providers.openai._OpenAI")
        analyzer = build_analyzer({"model": "openai", "openai_api_key": "k", "model_name": None, "llm_timeout": 5})
        assert isinstance(analyzer, OpenAIAnalyzer)
        assert analyzer.model == OpenAIAnalyzer.MODEL
