"""
OpenAI-compatible Provider

One adapter class serves every vendor that speaks the OpenAI chat completions
protocol. Instances differ only in provider tag, API key and base URL
(OpenAI itself, Alibaba Qwen via DashScope, DeepSeek).
"""

import structlog
from openai import AsyncOpenAI

from datalive.core.exceptions import ProviderError
from datalive.core.models import Provider
from datalive.services.ai.interface import GenerationOptions, ProviderAdapter

logger = structlog.get_logger()


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions adapter parameterized by base URL."""

    def __init__(
        self,
        provider: Provider,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.provider = provider
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            kwargs = {"api_key": self.api_key, "base_url": self.base_url}
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def generate(
        self,
        model_id: str,
        prompt: str,
        options: GenerationOptions,
    ) -> str:
        logger.debug(
            "ai_generate_start",
            provider=self.provider.value,
            model=model_id,
            prompt_len=len(prompt),
        )

        request_kwargs = {
            "model": model_id,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": options.max_tokens,
        }
        if options.temperature is not None:
            request_kwargs["temperature"] = options.temperature

        response = await self._get_client().chat.completions.create(**request_kwargs)

        if not response.choices:
            raise ProviderError("response contained no choices", provider=self.provider.value, model=model_id)
        content = response.choices[0].message.content
        if content is None:
            raise ProviderError("response contained no text", provider=self.provider.value, model=model_id)
        return content

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
