from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx

from genzoom.errors import BackendError


logger = logging.getLogger(__name__)

QueryPreparer = Callable[[str], Awaitable[str]]


def parse_sse_line(line: str) -> Optional[str]:
    """Return the content delta carried by one server-sent-event line, if any."""
    line = line.strip()
    if not line.startswith("data:"):
        return None
    data = line[len("data:"):].strip()
    if not data or data == "[DONE]":
        return None
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError:
        logger.warning("Skipping malformed search stream chunk: %s", data[:200])
        return None
    if not isinstance(chunk, dict):
        logger.warning("Skipping non-object search stream chunk: %s", data[:200])
        return None
    choices = chunk.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) and content else None


class SearchClient:
    """Streaming search/answer backend (OpenAI-compatible chat completions with SSE)."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        url: str,
        api_key: Optional[str],
        prepare_query: Optional[QueryPreparer] = None,
    ):
        self._http = http
        self._url = url
        self._api_key = api_key
        self._prepare_query = prepare_query

    async def iter_fragments(self, query: str) -> AsyncIterator[str]:
        """Yield answer fragments until end of stream; raises BackendError on failure."""
        payload = {
            "model": "exa",
            "messages": [{"role": "user", "content": query}],
            "stream": True,
            "extra_body": {"text": True},
        }
        headers = {"Authorization": f"Bearer {self._api_key or ''}"}
        try:
            async with self._http.stream("POST", self._url, json=payload, headers=headers) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise BackendError(
                        f"Search API returned {response.status_code}: {body[:500]}"
                    )
                async for line in response.aiter_lines():
                    fragment = parse_sse_line(line)
                    if fragment:
                        yield fragment
        except httpx.HTTPError as exc:
            raise BackendError(f"Search API call failed: {exc}") from exc

    async def search(self, query: str) -> Optional[str]:
        if self._prepare_query is not None:
            query = await self._prepare_query(query)
        logger.info("Calling search API with query: %r", query)
        parts = []
        try:
            async for fragment in self.iter_fragments(query):
                parts.append(fragment)
        except BackendError as exc:
            logger.error("Error calling search API: %s", exc)
            return None
        answer = "".join(parts).strip()
        if not answer:
            logger.warning("Search API returned an empty answer")
            return None
        return answer
