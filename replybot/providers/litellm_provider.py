"""LiteLLM-backed text generator producing several reply candidates per call."""

import os
import time
from dataclasses import dataclass
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from replybot.providers.base import TextGenerator


@dataclass
class ProviderHealth:
    """Health status of the generation backend."""
    healthy: bool = True
    last_failure: float = 0.0
    failure_count: int = 0
    last_error: str = ""

    def mark_failed(self, error: str) -> None:
        self.healthy = False
        self.last_failure = time.time()
        self.failure_count += 1
        self.last_error = error

    def mark_success(self) -> None:
        self.healthy = True
        self.failure_count = 0
        self.last_error = ""


class LiteLLMProvider(TextGenerator):
    """
    Text generator using LiteLLM for multi-provider support.

    One call asks the model for ``candidate_count`` completions; every
    non-empty completion becomes a candidate. Failures are logged and
    reported as an empty candidate list.
    """

    # Environment variable LiteLLM reads for each model prefix
    PROVIDER_ENV_KEYS = {
        "gemini": "GEMINI_API_KEY",
        "openrouter": "OPENROUTER_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "openai": "OPENAI_API_KEY",
        "deepseek": "DEEPSEEK_API_KEY",
    }

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gemini/gemini-2.0-flash",
        temperature: float = 0.9,
        top_p: float = 0.85,
        max_tokens: int = 35,
        candidate_count: int = 6,
    ):
        self.api_key = api_key
        self.api_base = api_base
        self.default_model = default_model
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens
        self.candidate_count = candidate_count

        self.health = ProviderHealth()

        # Usage tracking
        self._total_tokens = 0
        self._request_count = 0
        self._candidate_count = 0

        self._configure_environment(api_key)

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True

    def _detect_provider(self, model: str) -> str:
        """Detect provider from the model prefix."""
        prefix = model.split("/", 1)[0].lower() if "/" in model else ""
        if prefix in self.PROVIDER_ENV_KEYS:
            return prefix
        if "gemini" in model.lower():
            return "gemini"
        if "claude" in model.lower():
            return "anthropic"
        return "openai"

    def _configure_environment(self, api_key: str | None) -> None:
        """Configure environment variables for LiteLLM."""
        if not api_key:
            return
        env_key = self.PROVIDER_ENV_KEYS.get(self._detect_provider(self.default_model))
        if env_key:
            os.environ.setdefault(env_key, api_key)

    async def generate(self, prompt: str, context: dict[str, Any] | None = None) -> list[str]:
        """
        Request reply candidates for a prompt.

        Args:
            prompt: Rendered prompt text.
            context: Unused by this backend; accepted for interface parity.

        Returns:
            Candidate texts (possibly empty).
        """
        kwargs: dict[str, Any] = {
            "model": self.default_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
            "n": self.candidate_count,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = await acompletion(**kwargs)
        except Exception as e:
            self.health.mark_failed(str(e))
            logger.critical(f"Generation call failed: {e}")
            return []

        self.health.mark_success()
        self._request_count += 1
        candidates = self._parse_response(response)
        self._candidate_count += len(candidates)
        return candidates

    def _parse_response(self, response: Any) -> list[str]:
        """Extract candidate texts from a LiteLLM response."""
        candidates = []
        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None) if message else None
            if content and content.strip():
                candidates.append(content.strip())

        usage = getattr(response, "usage", None)
        if usage:
            self._total_tokens += getattr(usage, "total_tokens", 0) or 0
        return candidates

    def get_usage_stats(self) -> dict[str, Any]:
        """Get usage statistics."""
        return {
            "model": self.default_model,
            "total_tokens": self._total_tokens,
            "request_count": self._request_count,
            "candidate_count": self._candidate_count,
            "healthy": self.health.healthy,
            "failure_count": self.health.failure_count,
            "last_error": self.health.last_error,
        }
