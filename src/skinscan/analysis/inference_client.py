from abc import ABC, abstractmethod
from collections.abc import Sequence

import httpx
import openai

from skinscan.config import OpenAISettings
from skinscan.errors import InferenceError


class InferenceClient(ABC):
    """Contract for the multimodal inference service."""

    @abstractmethod
    async def analyze(self, prompt: str, image_urls: Sequence[str]) -> str:
        """Return the completion text for the prompt and the photos, in the given order."""

    async def close(self) -> None:
        """Release network resources."""


def build_messages(prompt: str, image_urls: Sequence[str]) -> list[dict[str, object]]:
    content: list[dict[str, object]] = [{"type": "text", "text": prompt}]
    content.extend({"type": "image_url", "image_url": {"url": url}} for url in image_urls)
    return [{"role": "user", "content": content}]


class OpenAIInferenceClient(InferenceClient):
    """Inference client built on the OpenAI-compatible chat API."""

    def __init__(self, settings: OpenAISettings) -> None:
        self._settings = settings
        self._client = openai.AsyncOpenAI(
            api_key=settings.api_key,
            timeout=settings.timeout_seconds,
            base_url=settings.base_url,
            max_retries=0,
        )

    async def analyze(self, prompt: str, image_urls: Sequence[str]) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.model,
                messages=build_messages(prompt, image_urls),
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_tokens,
                top_p=self._settings.top_p,
                frequency_penalty=0,
                presence_penalty=0,
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise InferenceError("Inference service is unavailable", details=str(exc)) from exc
        except openai.APIError as exc:
            raise InferenceError("Inference service returned an error", details=str(exc)) from exc

        if not response.choices:
            raise InferenceError("Inference service returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise InferenceError("Inference service returned empty response")
        return content

    async def close(self) -> None:
        await self._client.close()
