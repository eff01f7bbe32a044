"""Front API conversation source (async, read-only)."""

import asyncio
from typing import Any
from urllib.parse import quote

import httpx

from thread_matcher.config import (
    FRONT_API_BASE,
    FRONT_API_TOKEN,
    SEARCH_MAX_ATTEMPTS,
    SEARCH_TIMEOUT_SECONDS,
)
from thread_matcher.sources.front_models import FrontSearchResponse
from thread_matcher.sources.mapping import front_conversation_to_candidate
from thread_matcher.sources.protocol import SearchOutcome
from thread_matcher.utils.logger import get_logger

logger = get_logger("thread_matcher.sources.front")


class FrontAPIError(Exception):
    """Non-success response from the Front API."""

    def __init__(self, status_code: int, detail: str, retry_after: float | None = None):
        super().__init__(f"Front API error: {status_code} - {detail}")
        self.status_code = status_code
        self.retry_after = retry_after


def _is_transient_error(e: Exception) -> bool:
    """True if the error is worth retrying (network hiccup, timeout, 429, 5xx)."""
    if isinstance(e, FrontAPIError):
        return e.status_code == 429 or e.status_code >= 500
    return isinstance(e, (httpx.TransportError, ConnectionError, TimeoutError))


def _retry_after_seconds(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class FrontConversationSource:
    """Searches Front conversations by contact handle or free text.

    Both searches go through GET /conversations/search/{query}. Contact searches
    use the `recipient:` filter; free-text searches use a quoted phrase so
    "Big Blue Order" is not split into three words. Errors never escape a search
    call: they come back as SearchOutcome.failure(...).
    """

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = SEARCH_TIMEOUT_SECONDS,
        max_attempts: int = SEARCH_MAX_ATTEMPTS,
        client: httpx.AsyncClient | None = None,
    ):
        self._timeout = timeout_seconds
        self._max_attempts = max(1, max_attempts)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=(base_url or FRONT_API_BASE),
            headers={
                "Authorization": f"Bearer {api_token if api_token is not None else FRONT_API_TOKEN}",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(timeout_seconds),
        )
        logger.info("front_source.init", base_url=str(self._client.base_url), timeout_seconds=timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FrontConversationSource":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET with retries on transient errors. Raises the last error when attempts run out."""
        for attempt in range(self._max_attempts):
            try:
                response = await self._client.get(path, params=params)
                if response.status_code >= 400:
                    raise FrontAPIError(
                        response.status_code,
                        response.text[:500],
                        retry_after=_retry_after_seconds(response),
                    )
                return response.json()
            except Exception as e:
                if attempt < self._max_attempts - 1 and _is_transient_error(e):
                    delay = 0.5 * (attempt + 1)
                    if isinstance(e, FrontAPIError) and e.retry_after is not None:
                        delay = min(e.retry_after, self._timeout)
                    logger.debug(
                        "front_source.retry",
                        path=path,
                        attempt=attempt + 1,
                        delay=delay,
                        error_type=type(e).__name__,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise
        raise RuntimeError("unreachable")  # loop always returns or raises

    async def _search(self, query: str, limit: int, matched_by_query: bool) -> SearchOutcome:
        path = f"/conversations/search/{quote(query, safe='')}"
        try:
            data = await self._get(path, params={"limit": limit})
            parsed = FrontSearchResponse.model_validate(data)
        except Exception as e:
            err_str = str(e).strip() or repr(e)
            logger.warning(
                "front_source.search.failed",
                query=query,
                error=err_str,
                error_type=type(e).__name__,
            )
            return SearchOutcome.failure(err_str)
        candidates = [front_conversation_to_candidate(c, matched_by_query=matched_by_query) for c in parsed.results]
        logger.debug("front_source.search.ok", query=query, count=len(candidates))
        return SearchOutcome.ok(candidates)

    async def search_by_contact(self, handle: str, limit: int = 25) -> SearchOutcome:
        handle = (handle or "").strip()
        if not handle:
            return SearchOutcome.ok([])
        return await self._search(f"recipient:{handle}", limit, matched_by_query=False)

    async def search_by_query(self, query: str, limit: int = 25) -> SearchOutcome:
        term = (query or "").strip().replace('"', "")
        if not term:
            return SearchOutcome.ok([])
        return await self._search(f'"{term}"', limit, matched_by_query=True)
