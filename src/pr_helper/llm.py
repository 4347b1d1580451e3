"""Language-model client for the Anthropic Messages API.

Used for split suggestions, intent summaries and replies to reviewer
questions. The size estimate never depends on model output.
"""

import asyncio
import json
import logging
import random

import httpx
from .config import Config

ANTHROPIC_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"

# Status codes that trigger a retry (529 = overloaded)
_RETRYABLE_STATUS_CODES = {429, 500, 503, 529}
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds

logger = logging.getLogger(__name__)


def parse_json_content(content: str) -> dict:
    """Extract a JSON object from model output, handling markdown fences."""
    text = content.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [ln for ln in lines[1:] if not ln.strip().startswith("```")]
        text = "\n".join(lines).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Try to find JSON object in the text
        start = text.find("{")
        end = text.rfind("}") + 1
        if start >= 0 and end > start:
            return json.loads(text[start:end])
        raise


class LLMClient:
    """Async client for one Anthropic model.

    Construct explicitly from a Config and pass it to whatever needs it.
    """

    def __init__(self, config: Config):
        self.config = config
        self.model = config.model
        self._headers = {
            "x-api-key": config.anthropic_api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(120.0, connect=10.0),
                headers=self._headers,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 1024,
    ) -> str:
        """Send one prompt and return the text of the reply.

        Retries with exponential backoff on 429/500/503/529.

        Raises:
            httpx.HTTPStatusError: On non-retryable errors, or once retries
                are exhausted.
        """
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

        client = await self._get_client()
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await client.post(f"{ANTHROPIC_BASE}/messages", json=payload)
                resp.raise_for_status()
                data = resp.json()
                return "".join(
                    block.get("text", "")
                    for block in data.get("content", [])
                    if block.get("type") == "text"
                )
            except httpx.HTTPStatusError as e:
                if e.response.status_code in _RETRYABLE_STATUS_CODES:
                    last_exc = e
                    backoff = _BASE_BACKOFF * (2 ** attempt) + random.uniform(0, 0.5)
                    logger.info(
                        "Model request returned %d, retrying in %.1fs",
                        e.response.status_code,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise
        # All retries exhausted
        raise last_exc  # type: ignore[misc]

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 1024,
    ) -> dict:
        """Like complete(), but parse the reply as a JSON object.

        Raises:
            json.JSONDecodeError: If no JSON object can be recovered.
        """
        content = await self.complete(
            system_prompt, user_prompt, temperature=temperature, max_tokens=max_tokens
        )
        return parse_json_content(content)
