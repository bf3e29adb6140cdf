"""Text generation provider module."""

from replybot.providers.base import TextGenerator
from replybot.providers.litellm_provider import LiteLLMProvider, ProviderHealth
from replybot.providers.prompt import PromptBuilder

__all__ = [
    "TextGenerator",
    "LiteLLMProvider",
    "ProviderHealth",
    "PromptBuilder",
]
