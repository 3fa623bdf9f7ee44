"""
Google Gemini Provider

Uses the Generative Language API (generativelanguage.googleapis.com) with an
API key. Text is the concatenation of the first candidate's text parts.
"""

import httpx
import structlog

from datalive.core.exceptions import ProviderError
from datalive.core.models import Provider
from datalive.services.ai.interface import GenerationOptions, ProviderAdapter

logger = structlog.get_logger()

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GoogleAdapter(ProviderAdapter):

    provider = Provider.GOOGLE

    def __init__(
        self,
        api_key: str,
        base_url: str = GEMINI_API_BASE,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
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
        generation_config: dict = {"maxOutputTokens": options.max_tokens}
        if options.temperature is not None:
            generation_config["temperature"] = options.temperature

        response = await self._get_http_client().post(
            f"{self.base_url}/models/{model_id}:generateContent",
            params={"key": self.api_key},
            json={
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": generation_config,
            },
        )

        if response.status_code != 200:
            logger.warning(
                "google_generate_failed",
                model=model_id,
                status=response.status_code,
            )
            raise ProviderError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                provider=self.provider.value,
                model=model_id,
            )

        data = response.json()
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise ProviderError(
                f"no candidates returned (blockReason={block_reason})",
                provider=self.provider.value,
                model=model_id,
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            raise ProviderError("candidate contained no text", provider=self.provider.value, model=model_id)
        return text

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
