"""
Model client for the wallet agent.

One OpenAI-compatible `/chat/completions` call per loop round. Groq, OpenAI and
Gemini all speak that dialect, so a provider is just a base URL, a key and a
default model. Throttling and gateway errors are retried with backoff; if the
active provider still fails, the next provider with a configured key gets one try.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..core.config import get_settings
from ..core.flags import get_flags

logger = logging.getLogger(__name__)

PROVIDER_ORDER = ("groq", "openai", "gemini")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
MAX_RETRIES = 3
BASE_DELAY = 1.0
MAX_DELAY = 16.0

_client: Optional[httpx.AsyncClient] = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(connect=10, read=120, write=30, pool=10),
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
        )
    return _client


def set_client(client: Optional[httpx.AsyncClient]) -> None:
    """Swap the shared client (tests inject one backed by httpx.MockTransport)."""
    global _client
    _client = client


async def close_client():
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
        _client = None


@dataclass(frozen=True)
class Provider:
    name: str
    base_url: str
    api_key: str
    model: str

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"


def get_provider(name: Optional[str] = None) -> Provider:
    settings = get_settings()
    name = (name or get_flags().llm_provider).lower()
    if name == "gemini":
        return Provider(name, GEMINI_BASE_URL, settings.gemini_api_key, settings.default_llm_model)
    if name == "openai":
        return Provider(name, settings.openai_base_url, settings.openai_api_key, settings.default_llm_model)
    return Provider("groq", settings.groq_base_url, settings.groq_api_key, settings.default_llm_model)


def _fallback_for(primary: str) -> Optional[Provider]:
    """First other provider that has a key, in PROVIDER_ORDER."""
    for name in PROVIDER_ORDER:
        if name == primary:
            continue
        candidate = get_provider(name)
        if candidate.api_key:
            return candidate
    return None


def _backoff(attempt: int, retry_after: Optional[str] = None) -> float:
    # Retry-After may also be an HTTP date; only the seconds form is honoured
    if retry_after and retry_after.replace(".", "", 1).isdigit():
        return min(MAX_DELAY, float(retry_after))
    return min(MAX_DELAY, BASE_DELAY * (2 ** attempt) + random.uniform(0, 1))


async def _post_with_retry(client: httpx.AsyncClient, url: str, **kwargs) -> httpx.Response:
    last_exc: Optional[Exception] = None

    for attempt in range(MAX_RETRIES + 1):
        try:
            resp = await client.post(url, **kwargs)
        except httpx.TimeoutException as e:
            last_exc = e
            delay = _backoff(attempt)
            logger.warning("Model timeout (attempt %d/%d)", attempt + 1, MAX_RETRIES + 1)
        else:
            if resp.status_code not in RETRYABLE_STATUS:
                if resp.status_code >= 400:
                    logger.error("Model API error %d: %s", resp.status_code, resp.text[:500])
                resp.raise_for_status()
                return resp
            last_exc = httpx.HTTPStatusError(str(resp.status_code), request=resp.request, response=resp)
            delay = _backoff(attempt, resp.headers.get("retry-after"))
            logger.warning("Model returned %d (attempt %d/%d)", resp.status_code, attempt + 1, MAX_RETRIES + 1)

        if attempt < MAX_RETRIES:
            await asyncio.sleep(delay)

    raise last_exc or RuntimeError("Model request failed after retries")


async def chat(
    messages: list[dict],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    tools: Optional[list[dict]] = None,
    tool_choice: Optional[str] = None,
    provider: Optional[str] = None,
) -> dict:
    """
    One completion. Returns the raw response body.

    Raises ValueError when the provider has no key, httpx.HTTPError when the
    provider (and its fallback) could not answer.
    """
    settings = get_settings()
    active = get_provider(provider)
    if not active.api_key:
        raise ValueError(
            f"No API key for LLM provider '{active.name}'. "
            "Set GROQ_API_KEY, OPENAI_API_KEY, or GEMINI_API_KEY."
        )

    payload: dict[str, Any] = {
        "model": model or active.model,
        "messages": messages,
        "temperature": temperature if temperature is not None else settings.default_llm_temperature,
        "max_tokens": max_tokens or settings.default_llm_max_tokens,
    }
    if tools:
        payload["tools"] = tools
        if active.name != "gemini":
            payload["parallel_tool_calls"] = True
    if tool_choice:
        payload["tool_choice"] = tool_choice

    start = time.monotonic()
    try:
        resp = await _post_with_retry(
            _get_client(),
            active.completions_url,
            json=payload,
            headers={"Authorization": f"Bearer {active.api_key}"},
        )
    except httpx.HTTPError as e:
        logger.error("Model %s failed after %.1fs: %s", active.name, time.monotonic() - start, e)
        fallback = _fallback_for(active.name) if provider is None else None
        if fallback is None:
            raise
        logger.info("Falling back to %s", fallback.name)
        return await chat(
            messages=messages, model=model, temperature=temperature,
            max_tokens=max_tokens, tools=tools, tool_choice=tool_choice,
            provider=fallback.name,
        )

    data = resp.json()
    usage = data.get("usage") or {}
    message = (data.get("choices") or [{}])[0].get("message") or {}
    logger.info(
        "Model round via %s: %dms | tool_calls=%d | in=%d out=%d",
        active.name,
        int((time.monotonic() - start) * 1000),
        len(message.get("tool_calls") or []),
        usage.get("prompt_tokens", 0),
        usage.get("completion_tokens", 0),
    )
    return data
