"""
Anthropic Provider

Talks to the native Messages API over httpx. The response carries a list of
content blocks; the first text block is the generated answer.
"""

import httpx
import structlog

from datalive.core.exceptions import ProviderError
from datalive.core.models import Provider
from datalive.services.ai.interface import GenerationOptions, ProviderAdapter

logger = structlog.get_logger()

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):

    provider = Provider.ANTHROPIC

    def __init__(
        self,
        api_key: str,
        base_url: str = ANTHROPIC_API_URL,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._http_client = http_client

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def generate(
        self,
        model_id: str,
        prompt: str,
        options: GenerationOptions,
    ) -> str:
        payload = {
            "model": model_id,
            "max_tokens": options.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.temperature is not None:
            payload["temperature"] = options.temperature

        response = await self._get_http_client().post(
            self.base_url,
            json=payload,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
        )

        if response.status_code != 200:
            logger.warning(
                "anthropic_request_failed",
                model=model_id,
                status=response.status_code,
            )
            raise ProviderError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                provider=self.provider.value,
                model=model_id,
            )

        data = response.json()
        for block in data.get("content") or []:
            if block.get("type") == "text":
                return block.get("text", "")

        raise ProviderError("response contained no text block", provider=self.provider.value, model=model_id)

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
