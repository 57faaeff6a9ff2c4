"""Language-model analyzers. build_analyzer picks one from config."""

from __future__ import annotations

from prwarden_core.providers.base import AnalysisFinding, AnalysisResult, BaseAnalyzer


def build_analyzer(config: dict) -> BaseAnalyzer:
    model = config["model"]
    timeout = config.get("llm_timeout", 120)
    if model == "openai":
        from prwarden_core.providers.openai import OpenAIAnalyzer

        return OpenAIAnalyzer(api_key=config["openai_api_key"], model=config.get("model_name"), timeout=timeout)
    if model == "anthropic":
        from prwarden_core.providers.anthropic import AnthropicAnalyzer

        return AnthropicAnalyzer(api_key=config["anthropic_api_key"], model=config.get("model_name"), timeout=timeout)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'openai' or 'anthropic'.")


__all__ = ["AnalysisFinding", "AnalysisResult", "BaseAnalyzer", "build_analyzer"]
