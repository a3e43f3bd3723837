"""
Web search via the DuckDuckGo Instant Answer API.

The Instant Answer API is keyless but only answers "encyclopedic" queries
(people, places, Wikipedia topics). Anything else comes back empty or as an
HTML page, and both cases are reported as errors so the model can rephrase.
"""

import json
import logging
from typing import Any, Dict, Iterator, List, Optional

import httpx

from nira_constants import DUCKDUCKGO_API_URL

from .base import Tool, ToolError, ToolSchema, require_str

logger = logging.getLogger(__name__)

MAX_RESULTS = 5
_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def extract_title(text: str) -> str:
    """First sentence if it is short, otherwise the text cut to 60 chars."""
    if not text:
        return "Result"
    idx = text.find(".")
    if 0 < idx < 60:
        return text[:idx]
    if len(text) > 60:
        return text[:57] + "..."
    return text


def _truncate(s: str, max_len: int) -> str:
    return s if len(s) <= max_len else s[:max_len] + "..."


def _iter_topics(topics: List[Any]) -> Iterator[Dict[str, Any]]:
    # Disambiguation groups nest their entries under "Topics"
    for topic in topics or []:
        if not isinstance(topic, dict):
            continue
        if "Topics" in topic:
            yield from _iter_topics(topic["Topics"])
        else:
            yield topic


def parse_instant_answer(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """Abstract first, then related topics, then direct results; at most five."""
    results: List[Dict[str, str]] = []
    if data.get("AbstractText") and data.get("AbstractURL"):
        results.append({
            "title": data.get("Heading") or extract_title(data["AbstractText"]),
            "snippet": data["AbstractText"],
            "url": data["AbstractURL"],
            "source": data.get("AbstractSource") or "DuckDuckGo",
        })

    for topic in list(_iter_topics(data.get("RelatedTopics", []))) + list(data.get("Results") or []):
        if len(results) >= MAX_RESULTS:
            break
        text, url = topic.get("Text"), topic.get("FirstURL")
        if text and url:
            results.append({
                "title": extract_title(text),
                "snippet": text,
                "url": url,
                "source": "DuckDuckGo",
            })
    return results[:MAX_RESULTS]


class WebSearchTool(Tool):
    """
    Args:
        client: Optional httpx.Client; tests pass one built on httpx.MockTransport.
        timeout: Request timeout in seconds when the tool creates its own client.
    """

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = 15.0):
        self._client = client
        self._timeout = timeout

    @property
    def schema(self) -> ToolSchema:
        return ToolSchema(
            name="web_search",
            description=(
                "Searches the web (DuckDuckGo Instant Answers). Works best for well-known "
                "people, places and encyclopedic topics."
            ),
            parameters={"query": {"type": "string", "description": "What to search for"}},
            required=["query"],
        )

    def _fetch(self, query: str) -> httpx.Response:
        params = {"q": query, "format": "json", "no_redirect": "1", "no_html": "1", "skip_disambig": "1"}
        headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        if self._client is not None:
            return self._client.get(DUCKDUCKGO_API_URL, params=params, headers=headers)
        with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
            return client.get(DUCKDUCKGO_API_URL, params=params, headers=headers)

    def execute(self, args: Dict[str, Any]) -> Any:
        query = require_str(args, "query").strip()
        if not query:
            raise ToolError("query argument is required and must be a string")

        try:
            response = self._fetch(query)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolError(f"request failed: {e}") from e

        body = response.text
        if body.lstrip().startswith("<"):
            raise ToolError(
                f"DuckDuckGo returned HTML instead of JSON. The Instant Answer API may not have "
                f"results for '{query}'. Try a more specific query about a well-known topic."
            )
        try:
            data = json.loads(body)
        except ValueError as e:
            raise ToolError(f"failed to parse JSON response: {e} (response: {_truncate(body, 200)})") from e
        if not isinstance(data, dict):
            raise ToolError(f"unexpected response: {_truncate(body, 200)}")

        results = parse_instant_answer(data)
        if not results:
            raise ToolError(
                f"no results found for '{query}'. The Instant Answer API works best for famous "
                f"people, well-known places and Wikipedia topics."
            )
        logger.info("web_search '%s' returned %d results", query, len(results))
        return results
