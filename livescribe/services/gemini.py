import asyncio
import base64
import logging
from typing import Optional, Tuple

import httpx

from livescribe.core.config import (
    EXTERNAL_CALL_TIMEOUT,
    GEMINI_API_KEY,
    GEMINI_API_URL,
    GEMINI_MODEL,
)
from livescribe.core.errors import (
    ConfigurationError,
    PermanentExternalError,
    TransientExternalError,
)

logger = logging.getLogger(__name__)

TRANSCRIBE_PROMPT = "Transcribe this audio exactly as spoken. Output only the transcribed text, nothing else."

SUMMARY_PROMPT = (
    "Summarize this transcript concisely:\n\n"
    "**Format:**\n"
    "- Main topic: [one sentence]\n"
    "- Key points: [bullet points]\n"
    "- Action items: [if any]\n\n"
    "**Transcript:**\n{transcript}\n"
)

# 503 UNAVAILABLE и 429 RESOURCE_EXHAUSTED: сервис перегружен, стоит повторить
TRANSIENT_STATUS_CODES = {429, 503}


class GeminiClient:
    """Транскрибация и саммари через REST API Gemini (generateContent)."""

    def __init__(self, api_key: str = GEMINI_API_KEY, model: str = GEMINI_MODEL,
                 base_url: str = GEMINI_API_URL, timeout: float = EXTERNAL_CALL_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> str:
        """Отправляет аудио на транскрибацию"""
        parts = [
            {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(audio).decode("ascii")}},
            {"text": TRANSCRIBE_PROMPT},
        ]
        return await self._generate(parts)

    async def summarize(self, text: str) -> str:
        """Генерирует саммари по тексту"""
        return await self._generate([{"text": SUMMARY_PROMPT.format(transcript=text)}])

    async def check(self) -> Tuple[bool, str]:
        """Проверяет, что ключ задан и модель доступна."""
        if not self.api_key:
            return False, "GEMINI_API_KEY is not set in environment variables"
        try:
            async with self._client() as client:
                resp = await client.get(f"{self.base_url}/v1beta/models/{self.model}")
        except httpx.HTTPError as e:
            return False, f"Gemini unreachable: {e}"
        if resp.status_code != 200:
            return False, f"Gemini returned {resp.status_code}"
        return True, f"Model {self.model} is available"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"x-goog-api-key": self.api_key},
            transport=self._transport,
        )

    async def _generate(self, parts: list) -> str:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set in environment variables")

        url = f"{self.base_url}/v1beta/models/{self.model}:generateContent"
        payload = {"contents": [{"parts": parts}]}
        try:
            # Общий дедлайн на вызов, чтобы зависший запрос не держал очередь сессии
            async with self._client() as client:
                resp = await asyncio.wait_for(client.post(url, json=payload), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise PermanentExternalError(f"Gemini call timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise PermanentExternalError(f"Failed to reach Gemini: {e}") from e

        if resp.status_code in TRANSIENT_STATUS_CODES:
            logger.warning("Gemini временно недоступен: %s", resp.status_code)
            raise TransientExternalError(f"Gemini unavailable: {resp.status_code}")
        if resp.status_code != 200:
            logger.error("Ошибка Gemini: %s - %s", resp.status_code, resp.text[:500])
            raise PermanentExternalError(f"Gemini error: {resp.status_code}")

        candidates = resp.json().get("candidates") or []
        if not candidates:
            raise PermanentExternalError("Gemini response missing candidates")
        content_parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in content_parts).strip()
