"""Client for the external text-generation service (Ollama).

Generation goes through Ollama's OpenAI-compatible API at {OLLAMA_URL}/v1
using the openai async client. Reachability is probed separately against
Ollama's native /api/tags endpoint with a short timeout.

The service is untrusted: responses are treated as free text, and
parse_json_object() is the single place that turns text into structure.
"""

import asyncio
import json
import logging
import re
from typing import Any

import aiohttp
from openai import AsyncOpenAI, OpenAIError

from config import Config

logger = logging.getLogger(__name__)

# Ollama ignores the key, but the openai client requires one
_PLACEHOLDER_API_KEY = "ollama"

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


class GenerationError(Exception):
    """Raised when the service cannot be reached or times out mid-request."""
    pass


def parse_json_object(text: str | None) -> dict[str, Any] | None:
    """Parse a JSON object out of a model response.

    Tries, in order: the stripped text as-is, then the outermost {...}
    block. Markdown code fences are removed first.

    Returns:
        The parsed dict, or None if no JSON object can be recovered
    """
    if not text:
        return None
    raw = _FENCE.sub("", text).strip()

    candidates = [raw]
    start, end = raw.find("{"), raw.rfind("}")
    if 0 <= start < end:
        candidates.append(raw[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(data, dict):
            return data
    return None


class GenerationClient:
    """Thin async wrapper around the generation service.

    Example:
        >>> client = GenerationClient(config)
        >>> if await client.is_reachable():
        ...     text = await client.generate("Say hi as JSON", temperature=0.2)
    """

    def __init__(self, config: Config):
        """Initialize the client.

        Args:
            config: Application configuration with service URL, model and timeouts
        """
        self.base_url = config.ollama_url.rstrip("/")
        self.model = config.model
        self.gen_timeout = config.gen_timeout
        self.probe_timeout = config.probe_timeout
        self._client = AsyncOpenAI(
            base_url=f"{self.base_url}/v1",
            api_key=_PLACEHOLDER_API_KEY,
            timeout=self.gen_timeout,
            max_retries=0,
        )

    async def is_reachable(self) -> bool:
        """Lightweight health probe against the service.

        Returns:
            True if GET /api/tags answers with a 2xx status in time
        """
        url = f"{self.base_url}/api/tags"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.probe_timeout)
                ) as resp:
                    ok = resp.ok
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug("Service probe failed | url=%s error=%s", url, e)
            return False
        if not ok:
            logger.debug("Service probe non-2xx | url=%s", url)
        return ok

    async def generate(self, prompt: str, temperature: float = 0.3) -> str:
        """Send a single-message prompt and return the raw response text.

        Args:
            prompt: Full instruction text
            temperature: Sampling temperature

        Returns:
            Response text ('' if the service returned no content)

        Raises:
            GenerationError: On connection failure, timeout or API error
        """
        try:
            resp = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=temperature,
                    stream=False,
                ),
                timeout=self.gen_timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationError(f"generation timed out after {self.gen_timeout:.0f}s") from e
        except OpenAIError as e:
            raise GenerationError(f"{type(e).__name__}: {e}") from e

        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self._client.close()
