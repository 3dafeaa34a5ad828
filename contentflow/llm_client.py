import asyncio
import logging
import re
from typing import Optional

import httpx

from contentflow.errors import AIServiceError

logger = logging.getLogger(__name__)

PROVIDER = "ollama"

#----------text polish---------------

def _sanitize_llm_text(out: str) -> str:
    """Unwrap code fences and surrounding quotes from a model reply."""
    if not out:
        return ""
    s = out.strip()
    # Prefer content inside triple backticks if present
    m = re.search(r"```(?:\w+)?\s*([\s\S]*?)```", s)
    if m and m.group(1).strip():
        s = m.group(1).strip()
    if (s.startswith('"') and s.endswith('"')) or (s.startswith("“") and s.endswith("”")):
        inner = s[1:-1].strip()
        if inner:
            s = inner
    return s


class LLMClient:
    """Thin wrapper around Ollama /api/generate (non-streaming)."""

    def __init__(self, base_url: str, default_model: str, *, timeout: float = 60.0,
                 max_retries: int = 3, retry_delay: float = 1.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> "LLMClient":
        return cls(
            settings.OLLAMA_BASE_URL,
            settings.OLLAMA_MODEL,
            timeout=settings.LLM_TIMEOUT,
            max_retries=settings.LLM_MAX_RETRIES,
            retry_delay=settings.LLM_RETRY_DELAY,
        )

    async def _post(self, payload: dict) -> dict:
        url = f"{self.base_url}/api/generate"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            r = await client.post(url, json=payload)
            r.raise_for_status()
            return r.json() or {}

    async def generate(self, prompt: str, model: Optional[str] = None, *,
                       temperature: float = 0.7, max_tokens: int = 1000) -> str:
        model = model or self.default_model
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                # Some Ollama builds accept num_predict to limit tokens. If unsupported, it's ignored.
                "num_predict": max_tokens,
            },
        }

        last_error: Optional[str] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                data = await self._post(payload)
            except (httpx.HTTPError, ValueError) as e:
                last_error = f"Ollama request failed: {e}"
                logger.warning("LLM call to %s failed (attempt %d/%d): %s", model, attempt, self.max_retries, e)
            else:
                out = _sanitize_llm_text(data.get("response", "") or "")
                if out:
                    return out
                last_error = "Empty response from Ollama."
                logger.warning("LLM call to %s returned nothing (attempt %d/%d)", model, attempt, self.max_retries)
            if attempt < self.max_retries and self.retry_delay:
                await asyncio.sleep(self.retry_delay)

        logger.error("LLM call to %s gave up after %d attempts", model, self.max_retries)
        raise AIServiceError(last_error or "Ollama request failed")
