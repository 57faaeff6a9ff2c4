from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from prwarden_core.providers.base import BaseAnalyzer


class OpenAIAnalyzer(BaseAnalyzer):
    MODEL = "gpt-4o-mini"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, model: str | None = None, timeout: float = 120):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install 'prwarden[openai]'"
            )
        self.model = model or self.MODEL
        # max_retries=0: one attempt per event; failures mark the review failed.
        self.client = _OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        return response.choices[0].message.content or ""
