"""Web Domain - page scraping and URL inspection.

Provides:
- scrape_webpage: fetch a page and return its text or raw HTML
- analyze_url: HEAD a URL and report its status and key headers

Each call runs on its own httpx.AsyncClient.
"""

import re
from typing import Any

import httpx

from shared.logging import get_logger
from shared.models import ToolCallContext, ToolDefinition, ToolFailed, ToolOk
from domains.base import HTTPDomain

logger = get_logger(__name__)

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")

ANALYZED_HEADERS = (
    ("Content-Type", "content-type"),
    ("Content-Length", "content-length"),
    ("Server", "server"),
    ("Last-Modified", "last-modified"),
)


def html_to_text(html: str) -> str:
    """Drop scripts, styles and tags, then collapse whitespace."""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


class WebDomain(HTTPDomain):
    """Scraping and URL analysis tools."""

    name = "web"

    @property
    def tools(self) -> list[ToolDefinition]:
        url = {"type": "string", "format": "uri", "description": "Absolute http(s) URL"}
        return [
            self._tool(
                name="scrape_webpage",
                description=(
                    "Fetch a web page and return its visible text, or the raw HTML "
                    "when extract_text is false."
                ),
                properties={
                    "url": url,
                    "selector": {
                        "type": "string",
                        "description": "CSS selector (accepted, not applied)",
                    },
                    "extract_text": {
                        "type": "boolean",
                        "default": True,
                        "description": "Return plain text instead of HTML",
                    },
                    "user_agent": {
                        "type": "string",
                        "default": self.settings.scraper.user_agent,
                        "description": "User-Agent header for the request",
                    },
                },
                required=["url"],
                handler=self.scrape_webpage,
                error_context="scraping {url}",
                resource_factory=self.new_client,
            ),
            self._tool(
                name="analyze_url",
                description="Report the HTTP status and key headers of a URL without downloading it.",
                properties={"url": url},
                handler=self.analyze_url,
                error_context="analyzing {url}",
                resource_factory=self.new_client,
            ),
        ]

    async def scrape_webpage(
        self,
        arguments: dict[str, Any],
        context: ToolCallContext
    ) -> ToolOk | ToolFailed:
        client: httpx.AsyncClient = context.resource
        url = arguments["url"]

        if arguments.get("selector"):
            logger.debug("Selector ignored", selector=arguments["selector"])

        response = await client.get(url, headers={"User-Agent": arguments["user_agent"]})
        if not response.is_success:
            return self._failed(f"HTTP Error: {response.status_code} {response.reason_phrase}")

        html = response.text
        if arguments["extract_text"]:
            text = html_to_text(html)
            return self._ok(f"URL: {url}\nLength: {len(text)} characters\n\nContent:\n{text}")

        return self._ok(f"URL: {url}\nHTML Length: {len(html)} characters\n\nHTML:\n{html}")

    async def analyze_url(
        self,
        arguments: dict[str, Any],
        context: ToolCallContext
    ) -> ToolOk:
        client: httpx.AsyncClient = context.resource
        url = arguments["url"]

        response = await client.head(
            url, headers={"User-Agent": self.settings.scraper.analyzer_user_agent}
        )

        lines = [
            f"URL Analysis: {url}",
            f"Status: {response.status_code} {response.reason_phrase}",
        ]
        for label, header in ANALYZED_HEADERS:
            lines.append(f"{label}: {response.headers.get(header) or 'unknown'}")
        return self._ok("\n".join(lines))
