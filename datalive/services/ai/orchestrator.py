"""
AI Orchestrator

Single entry point for every language-model call in DataLive:
- Resolves the caller's preferred model (or the catalog default)
- Dispatches to the provider adapter for that model, with a timeout
- On any failure, retries exactly once against the fixed fallback model

The orchestrator persists nothing except through ``set_preference``.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.config import settings
from datalive.core.exceptions import ProviderError, ValidationError
from datalive.core.models import TaskType
from datalive.db import UserPreferenceModel
from datalive.services.ai.catalog import ModelCatalog, ModelDescriptor
from datalive.services.ai.interface import GenerationOptions
from datalive.services.ai.providers import ProviderRegistry

logger = structlog.get_logger(module="ai_orchestrator")


@dataclass(frozen=True)
class OrchestratorResult:
    text: str
    model_used: str
    provider: str
    elapsed_ms: int
    used_fallback: bool = False


class PreferenceStore(Protocol):
    async def get(self, owner_id: str) -> str | None: ...

    async def set(self, owner_id: str, model_id: str) -> None: ...


class SQLPreferenceStore:
    """Global per-owner model preference in ``user_preferences``."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, owner_id: str) -> str | None:
        preference = await self.db.get(UserPreferenceModel, owner_id)
        return preference.default_model if preference else None

    async def set(self, owner_id: str, model_id: str) -> None:
        preference = await self.db.get(UserPreferenceModel, owner_id)
        if preference is None:
            self.db.add(UserPreferenceModel(owner_id=owner_id, default_model=model_id))
        else:
            preference.default_model = model_id
        await self.db.commit()


class AIOrchestrator:
    """Preference-aware dispatcher with one-shot fallback."""

    def __init__(
        self,
        catalog: ModelCatalog,
        providers: ProviderRegistry,
        preferences: PreferenceStore,
        fallback_model_id: str | None = None,
        max_output_tokens: int | None = None,
        timeout: float | None = None,
    ):
        self.catalog = catalog
        self.providers = providers
        self.preferences = preferences
        self.fallback_model_id = fallback_model_id or settings.ai_fallback_model
        self.max_output_tokens = max_output_tokens or settings.ai_max_output_tokens
        self.timeout = timeout if timeout is not None else settings.ai_request_timeout

    async def get_preference(self, owner_id: str) -> str:
        """Preferred model id for ``owner_id``, or the catalog default."""
        return await self.preferences.get(owner_id) or self.catalog.get_default().id

    async def set_preference(self, owner_id: str, model_id: str) -> ModelDescriptor:
        descriptor = self.catalog.get(model_id)
        if descriptor is None:
            raise ValidationError(f"Unknown model: {model_id}", {"model": model_id})
        await self.preferences.set(owner_id, model_id)
        logger.info("model_preference_updated", owner_id=owner_id, model=model_id)
        return descriptor

    async def _resolve_model(self, owner_id: str) -> ModelDescriptor:
        preferred = await self.preferences.get(owner_id)
        default = self.catalog.get_default()
        if preferred is None:
            return default

        descriptor = self.catalog.get(preferred)
        if descriptor is None:
            logger.warning(
                "unknown_preferred_model",
                owner_id=owner_id,
                model=preferred,
                using=default.id,
            )
            return default
        if not descriptor.enabled:
            logger.warning(
                "preferred_model_disabled",
                owner_id=owner_id,
                model=preferred,
                using=default.id,
            )
            return default
        return descriptor

    async def _call(
        self,
        descriptor: ModelDescriptor,
        prompt: str,
        temperature: float | None,
    ) -> str:
        adapter = self.providers.get(descriptor.provider)
        options = GenerationOptions(
            max_tokens=min(descriptor.max_tokens, self.max_output_tokens),
            temperature=temperature,
        )
        try:
            return await asyncio.wait_for(
                adapter.generate(descriptor.id, prompt, options),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise ProviderError(
                f"timed out after {self.timeout:g}s",
                provider=descriptor.provider.value,
                model=descriptor.id,
            ) from e

    async def execute(
        self,
        prompt: str,
        owner_id: str,
        task_type: TaskType,
        context_id: int | str | None = None,
        temperature: float | None = None,
    ) -> OrchestratorResult:
        """Run ``prompt`` on the owner's model, falling back once on failure.

        Raises:
            ProviderError: Both the primary and the fallback call failed. The
                error describes the fallback failure.
        """
        descriptor = await self._resolve_model(owner_id)
        log = logger.bind(
            owner_id=owner_id,
            task_type=task_type.value,
            context_id=context_id,
        )
        log.info("ai_execute_start", model=descriptor.id, provider=descriptor.provider.value)

        start = time.perf_counter()
        try:
            text = await self._call(descriptor, prompt, temperature)
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            log.info("ai_execute_success", model=descriptor.id, elapsed_ms=elapsed_ms)
            return OrchestratorResult(
                text=text,
                model_used=descriptor.id,
                provider=descriptor.provider.value,
                elapsed_ms=elapsed_ms,
            )
        except Exception as e:
            log.error("ai_execute_failed", model=descriptor.id, error=str(e))

        fallback = self.catalog.resolve(self.fallback_model_id)
        log.warning("ai_fallback_start", model=fallback.id, provider=fallback.provider.value)

        start = time.perf_counter()
        try:
            text = await self._call(fallback, prompt, temperature)
        except ProviderError as e:
            log.error("ai_fallback_failed", model=fallback.id, error=str(e))
            raise
        except Exception as e:
            log.error("ai_fallback_failed", model=fallback.id, error=str(e))
            raise ProviderError(str(e), provider=fallback.provider.value, model=fallback.id) from e

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        log.info("ai_fallback_success", model=fallback.id, elapsed_ms=elapsed_ms)
        return OrchestratorResult(
            text=text,
            model_used=fallback.id,
            provider=fallback.provider.value,
            elapsed_ms=elapsed_ms,
            used_fallback=True,
        )
