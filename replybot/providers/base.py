"""Base text generator interface."""

from abc import ABC, abstractmethod
from typing import Any


class TextGenerator(ABC):
    """
    Abstract text generation backend.

    ``generate`` returns zero or more raw candidate texts. Implementations
    may raise; callers treat any failure as "no candidates".
    """

    @abstractmethod
    async def generate(self, prompt: str, context: dict[str, Any] | None = None) -> list[str]:
        """
        Produce raw reply candidates.

        Args:
            prompt: Fully rendered prompt text.
            context: Extra information (channel id, author, ...).

        Returns:
            Candidate texts, possibly empty.
        """
        pass

    def get_usage_stats(self) -> dict[str, Any]:
        return {}
