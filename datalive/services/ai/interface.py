"""
AI Provider Interface

Abstract base class defining the contract that all provider adapters implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from datalive.core.models import Provider


@dataclass(frozen=True)
class GenerationOptions:
    max_tokens: int = 8192
    temperature: float | None = None


class ProviderAdapter(ABC):
    """Uniform text-generation contract over heterogeneous vendor APIs.

    Adapters translate ``GenerationOptions`` into the vendor call shape and
    extract plain text from the vendor response envelope. They never swallow
    errors: transport and vendor failures propagate to the orchestrator.
    """

    provider: Provider

    @abstractmethod
    async def generate(
        self,
        model_id: str,
        prompt: str,
        options: GenerationOptions,
    ) -> str:
        """Generate text for ``prompt`` with ``model_id``.

        Raises:
            ProviderError: The vendor reported an error or returned no text.
        """

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
        return None
