"""
Provider Adapters Package

One adapter implementation per vendor protocol. ``ProviderRegistry`` maps a
``Provider`` to its adapter instance and is built once at process start from
the configured API keys; the orchestrator looks adapters up here instead of
branching on provider names.

To add a new provider:
1. Implement ``ProviderAdapter`` in a new module
2. Construct it in ``ProviderRegistry.from_settings`` when its key is set
"""

from collections.abc import Iterator

import structlog

from datalive.core.config import Settings
from datalive.core.exceptions import ProviderNotConfiguredError
from datalive.core.models import Provider
from datalive.services.ai.interface import ProviderAdapter
from datalive.services.ai.providers.anthropic import AnthropicAdapter
from datalive.services.ai.providers.google import GoogleAdapter
from datalive.services.ai.providers.openai import OpenAICompatibleAdapter

logger = structlog.get_logger()


class ProviderRegistry:
    """Provider -> adapter map. Read-only after startup."""

    def __init__(self, adapters: dict[Provider, ProviderAdapter] | None = None):
        self._adapters: dict[Provider, ProviderAdapter] = dict(adapters or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderRegistry":
        """Build adapters for every provider that has an API key configured."""
        timeout = settings.ai_request_timeout
        registry = cls()
        if settings.google_api_key:
            registry.register(GoogleAdapter(settings.google_api_key, timeout=timeout))
        if settings.anthropic_api_key:
            registry.register(AnthropicAdapter(settings.anthropic_api_key, timeout=timeout))
        if settings.openai_api_key:
            registry.register(
                OpenAICompatibleAdapter(Provider.OPENAI, settings.openai_api_key, timeout=timeout)
            )
        if settings.qwen_api_key:
            registry.register(
                OpenAICompatibleAdapter(
                    Provider.QWEN,
                    settings.qwen_api_key,
                    base_url=settings.qwen_base_url,
                    timeout=timeout,
                )
            )
        if settings.deepseek_api_key:
            registry.register(
                OpenAICompatibleAdapter(
                    Provider.DEEPSEEK,
                    settings.deepseek_api_key,
                    base_url=settings.deepseek_base_url,
                    timeout=timeout,
                )
            )

        if not registry:
            logger.warning("ai_no_providers_configured")
        else:
            logger.info(
                "ai_providers_configured",
                providers=[p.value for p in registry.available()],
            )
        return registry

    def __bool__(self) -> bool:
        return bool(self._adapters)

    def __iter__(self) -> Iterator[Provider]:
        return iter(self._adapters)

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.provider] = adapter

    def get(self, provider: Provider | str) -> ProviderAdapter:
        provider = Provider(provider)
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise ProviderNotConfiguredError(provider.value)
        return adapter

    def available(self) -> list[Provider]:
        return list(self._adapters)

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()


__all__ = [
    "AnthropicAdapter",
    "GoogleAdapter",
    "OpenAICompatibleAdapter",
    "ProviderRegistry",
]
