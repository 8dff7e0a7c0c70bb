"""Groq chat completions client (OpenAI-compatible HTTP API).

Responsibilities:
- ``chat_completion()``: prepend the system prompt, POST the conversation and
  return the assistant's reply text.

Error handling maps HTTP status codes to typed exceptions:
- HTTP 429 -> :class:`~grounded_chat.core.exceptions.ChatRateLimitError`
- HTTP 401/403 -> :class:`~grounded_chat.core.exceptions.ChatAuthError`
- Other non-2xx, network errors, malformed bodies ->
  :class:`~grounded_chat.core.exceptions.ChatCompletionError`
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from grounded_chat.core.exceptions import (
    ChatAuthError,
    ChatCompletionError,
    ChatRateLimitError,
)
from grounded_chat.llm.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_PROVIDER = "groq"


async def chat_completion(
    client: httpx.AsyncClient,
    messages: list[dict[str, str]],
    *,
    api_key: str,
    model: str,
    api_url: str,
    timeout: float = 60.0,
    system_prompt: str = SYSTEM_PROMPT,
) -> str:
    """Send the conversation to Groq and return the first choice's content.

    Args:
        client: Shared :class:`httpx.AsyncClient` instance.
        messages: Conversation turns (``{"role", "content"}`` dicts), oldest
            first, ending with the grounded user prompt.
        api_key: Groq API key (``Bearer`` token).
        model: Model identifier (e.g. ``"llama-3.1-8b-instant"``).
        api_url: Chat completions endpoint URL.
        timeout: Request timeout in seconds.
        system_prompt: System message prepended to *messages*.

    Returns:
        The assistant reply text (empty string if the model returned none).

    Raises:
        ChatRateLimitError: On HTTP 429.
        ChatAuthError: On HTTP 401 or 403, or when no API key is configured.
        ChatCompletionError: On other HTTP errors, network failures or an
            unexpected response body.
    """
    if not api_key:
        raise ChatAuthError("groq: no API key configured", provider=_PROVIDER)

    payload: dict[str, Any] = {
        "model": model,
        "messages": [{"role": "system", "content": system_prompt}, *messages],
    }
    headers: dict[str, str] = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    logger.info("groq: requesting completion", extra={"model": model, "turns": len(messages)})

    try:
        response = await client.post(api_url, json=payload, headers=headers, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        code = exc.response.status_code
        if code == 429:
            retry_after = _parse_retry_after(exc.response.headers.get("Retry-After"))
            raise ChatRateLimitError(
                "groq: HTTP 429 rate limited",
                retry_after=retry_after,
                provider=_PROVIDER,
            ) from exc
        if code in (401, 403):
            raise ChatAuthError(
                f"groq: HTTP {code}: invalid API key", provider=_PROVIDER
            ) from exc
        raise ChatCompletionError(
            f"groq: HTTP {code} - {exc.response.text[:200]}", provider=_PROVIDER
        ) from exc
    except httpx.RequestError as exc:
        raise ChatCompletionError(
            f"groq: network error - {exc}", provider=_PROVIDER
        ) from exc

    try:
        body = response.json()
        content = body["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise ChatCompletionError(
            f"groq: unexpected response body - {exc}", provider=_PROVIDER
        ) from exc

    logger.info("groq: completion received", extra={"model": model})
    return content or ""


def _parse_retry_after(value: str | None) -> float:
    try:
        return float(value) if value is not None else 60.0
    except ValueError:
        return 60.0
