"""
Model Catalog

Static registry of the language models DataLive can call, keyed by model id.
The table is loaded once at startup; providers without a configured API key
have their models reported as disabled rather than failing at call time.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass, replace
from typing import Any

import structlog

from datalive.core.exceptions import DataLiveException, ResourceNotFoundError
from datalive.core.models import Provider

logger = structlog.get_logger()

DEFAULT_MODEL_ID = "gemini-2.5-flash"


class ModelNotFoundError(ResourceNotFoundError):
    def __init__(self, model_id: str):
        super().__init__("Model", model_id)
        self.model_id = model_id


class CatalogEmptyError(DataLiveException):
    """The catalog holds no models at all."""


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    provider: Provider
    name: str
    description: str = ""
    max_tokens: int = 8192
    supports_streaming: bool = False
    cost_per_1k_tokens: float = 0.0
    enabled: bool = True
    is_default: bool = False
    requires_api_key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["provider"] = self.provider.value
        return data


MODEL_TABLE: tuple[ModelDescriptor, ...] = (
    # Google Gemini
    ModelDescriptor(
        id="gemini-2.0-flash-exp",
        provider=Provider.GOOGLE,
        name="Gemini 2.0 Flash (Experimental)",
        description="Fast experimental Gemini model",
        max_tokens=8192,
        supports_streaming=True,
        requires_api_key="GOOGLE_API_KEY",
    ),
    ModelDescriptor(
        id="gemini-2.5-flash",
        provider=Provider.GOOGLE,
        name="Gemini 2.5 Flash",
        description="Fast and efficient, default model",
        max_tokens=8192,
        supports_streaming=True,
        is_default=True,
        requires_api_key="GOOGLE_API_KEY",
    ),
    ModelDescriptor(
        id="gemini-pro",
        provider=Provider.GOOGLE,
        name="Gemini Pro",
        description="Balanced Gemini model for complex analysis",
        max_tokens=32768,
        supports_streaming=True,
        cost_per_1k_tokens=0.0005,
        requires_api_key="GOOGLE_API_KEY",
    ),
    # Anthropic Claude
    ModelDescriptor(
        id="claude-3-5-sonnet-20241022",
        provider=Provider.ANTHROPIC,
        name="Claude 3.5 Sonnet",
        description="Strong reasoning and long technical documents",
        max_tokens=8192,
        supports_streaming=True,
        cost_per_1k_tokens=0.003,
        requires_api_key="ANTHROPIC_API_KEY",
    ),
    ModelDescriptor(
        id="claude-3-5-opus-20250115",
        provider=Provider.ANTHROPIC,
        name="Claude 3.5 Opus",
        description="Most capable Claude model",
        max_tokens=8192,
        supports_streaming=True,
        cost_per_1k_tokens=0.015,
        requires_api_key="ANTHROPIC_API_KEY",
    ),
    ModelDescriptor(
        id="claude-3-5-haiku-20241022",
        provider=Provider.ANTHROPIC,
        name="Claude 3.5 Haiku",
        description="Fast and economical Claude model",
        max_tokens=8192,
        supports_streaming=True,
        cost_per_1k_tokens=0.001,
        requires_api_key="ANTHROPIC_API_KEY",
    ),
    # OpenAI
    ModelDescriptor(
        id="gpt-4o",
        provider=Provider.OPENAI,
        name="GPT-4o",
        description="OpenAI multimodal flagship",
        max_tokens=128000,
        supports_streaming=True,
        cost_per_1k_tokens=0.005,
        requires_api_key="OPENAI_API_KEY",
    ),
    ModelDescriptor(
        id="gpt-4-turbo",
        provider=Provider.OPENAI,
        name="GPT-4 Turbo",
        description="Large context GPT-4",
        max_tokens=128000,
        supports_streaming=True,
        cost_per_1k_tokens=0.01,
        requires_api_key="OPENAI_API_KEY",
    ),
    ModelDescriptor(
        id="gpt-3.5-turbo",
        provider=Provider.OPENAI,
        name="GPT-3.5 Turbo",
        description="Fast and cheap",
        max_tokens=16385,
        supports_streaming=True,
        cost_per_1k_tokens=0.0005,
        requires_api_key="OPENAI_API_KEY",
    ),
    # Qwen (Alibaba, OpenAI-compatible)
    ModelDescriptor(
        id="qwen-max",
        provider=Provider.QWEN,
        name="Qwen Max",
        description="Most capable Qwen model",
        max_tokens=8192,
        supports_streaming=True,
        cost_per_1k_tokens=0.002,
        enabled=False,
        requires_api_key="QWEN_API_KEY",
    ),
    ModelDescriptor(
        id="qwen-plus",
        provider=Provider.QWEN,
        name="Qwen Plus",
        description="Balanced Qwen model",
        max_tokens=8192,
        supports_streaming=True,
        cost_per_1k_tokens=0.0008,
        enabled=False,
        requires_api_key="QWEN_API_KEY",
    ),
    # DeepSeek (OpenAI-compatible)
    ModelDescriptor(
        id="deepseek-chat",
        provider=Provider.DEEPSEEK,
        name="DeepSeek Chat",
        description="DeepSeek general chat model",
        max_tokens=4096,
        supports_streaming=True,
        cost_per_1k_tokens=0.0001,
        enabled=False,
        requires_api_key="DEEPSEEK_API_KEY",
    ),
)


class ModelCatalog:
    """In-memory model registry with O(1) lookup by id."""

    def __init__(
        self,
        descriptors: Iterable[ModelDescriptor] = MODEL_TABLE,
        fallback_default_id: str = DEFAULT_MODEL_ID,
    ):
        self._models: dict[str, ModelDescriptor] = {}
        self.fallback_default_id = fallback_default_id
        for descriptor in descriptors:
            self.register(descriptor.id, descriptor)

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def get(self, model_id: str) -> ModelDescriptor | None:
        return self._models.get(model_id)

    def resolve(self, model_id: str) -> ModelDescriptor:
        """Return the descriptor for ``model_id`` or raise ModelNotFoundError."""
        descriptor = self._models.get(model_id)
        if descriptor is None:
            raise ModelNotFoundError(model_id)
        return descriptor

    def list_all(self) -> list[ModelDescriptor]:
        return list(self._models.values())

    def list_enabled(self) -> list[ModelDescriptor]:
        return [m for m in self._models.values() if m.enabled]

    def list_by_provider(self, provider: Provider | str) -> list[ModelDescriptor]:
        provider = Provider(provider)
        return [m for m in self._models.values() if m.provider == provider]

    def get_default(self) -> ModelDescriptor:
        """Flagged default, else the hard-coded default id, else the first entry."""
        if not self._models:
            raise CatalogEmptyError("Model catalog is empty")
        for descriptor in self._models.values():
            if descriptor.is_default:
                return descriptor
        fallback = self._models.get(self.fallback_default_id)
        if fallback is not None:
            return fallback
        return next(iter(self._models.values()))

    def register(self, model_id: str, descriptor: ModelDescriptor) -> None:
        """Add or overwrite a model. A new default demotes the previous one."""
        if descriptor.id != model_id:
            descriptor = replace(descriptor, id=model_id)
        if descriptor.is_default:
            for other_id, other in self._models.items():
                if other.is_default and other_id != model_id:
                    self._models[other_id] = replace(other, is_default=False)
        self._models[model_id] = descriptor
        logger.debug("model_registered", model=model_id, provider=descriptor.provider.value)

    def with_available_providers(self, providers: Iterable[Provider]) -> "ModelCatalog":
        """Copy of the catalog with availability derived from configured providers."""
        available = set(providers)
        catalog = ModelCatalog((), fallback_default_id=self.fallback_default_id)
        for descriptor in self._models.values():
            catalog.register(
                descriptor.id,
                replace(descriptor, enabled=descriptor.provider in available),
            )
        return catalog

    @staticmethod
    def estimate_tokens(text: str) -> int:
        """Rough estimate: one token per four characters."""
        return len(text) // 4

    def estimate_cost(self, model_id: str, tokens: int) -> float:
        descriptor = self.resolve(model_id)
        return round(tokens / 1000 * descriptor.cost_per_1k_tokens, 6)
