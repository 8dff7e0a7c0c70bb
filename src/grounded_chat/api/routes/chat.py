"""Chat and scrape route handlers.

Routes:
    POST /api/chat    answer a message, grounded on the first URL it contains
    POST /api/scrape  resolve a URL and return the extracted page content

Both routes sit behind the rate-limit middleware.
"""

from __future__ import annotations

from typing import Annotated, Any

import httpx
import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from grounded_chat.api.dependencies import (
    get_app_settings,
    get_http_client,
    get_scrape_service,
)
from grounded_chat.config.settings import Settings
from grounded_chat.core.exceptions import ChatCompletionError, ChatRateLimitError
from grounded_chat.core.schemas import ChatRequest, ChatResponse, ScrapeRequest
from grounded_chat.llm.groq_client import chat_completion
from grounded_chat.llm.prompts import build_user_prompt
from grounded_chat.scraper.service import ScrapeService
from grounded_chat.scraper.url_detector import find_url, strip_url

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    service: Annotated[ScrapeService, Depends(get_scrape_service)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ChatResponse:
    """Answer the user's message, using the linked page as grounding context.

    Only the first URL in ``message`` is resolved.  A failed fetch is not an
    error here: the model simply receives no content and is instructed to ask
    for more information.

    Raises:
        HTTPException 503: The language model provider is rate limiting us.
        HTTPException 502: Any other language model failure.
    """
    url = find_url(payload.message)
    page_content = ""
    if url is not None:
        scraped = await service.resolve(url)
        page_content = scraped.content
        logger.info(
            "chat_grounded",
            url=url,
            content_chars=len(page_content),
            scrape_error=scraped.error,
        )

    prompt = build_user_prompt(strip_url(payload.message, url), page_content, url)
    messages = [turn.model_dump() for turn in payload.messages]
    messages.append({"role": "user", "content": prompt})

    try:
        reply = await chat_completion(
            client,
            messages,
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            api_url=settings.groq_api_url,
            timeout=settings.llm_timeout,
        )
    except ChatRateLimitError as exc:
        logger.warning("llm_rate_limited", retry_after=exc.retry_after)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The language model is busy. Try again shortly.",
            headers={"Retry-After": str(int(exc.retry_after))},
        ) from exc
    except ChatCompletionError as exc:
        logger.error("llm_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The language model request failed.",
        ) from exc

    return ChatResponse(message=reply)


@router.post("/scrape")
async def scrape(
    payload: ScrapeRequest,
    service: Annotated[ScrapeService, Depends(get_scrape_service)],
) -> dict[str, Any]:
    """Resolve the first URL in ``url`` and return its ScrapedContent (camelCase).

    Fetch failures are reported in the body's ``error`` field with HTTP 200.

    Raises:
        HTTPException 422: If the input contains no URL.
    """
    url = find_url(payload.url)
    if url is None:
        raise HTTPException(
            status_code=422,
            detail="No URL found in input.",
        )
    result = await service.resolve(url)
    return result.to_payload()
