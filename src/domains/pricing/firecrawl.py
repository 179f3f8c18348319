"""Per-call Firecrawl client.

Wraps the synchronous Firecrawl SDK so handlers can await it. A new
FirecrawlClient is built for every tool call and entered as an async
context manager; it is never shared between calls.
"""

import asyncio
import functools
from typing import Any, Callable, Optional

from firecrawl import FirecrawlApp

from shared.logging import get_logger

logger = get_logger(__name__)


def result_field(result: Any, name: str, default: Any = None) -> Any:
    """Read a field from an SDK response model or a plain dict."""
    if result is None:
        return default
    if isinstance(result, dict):
        return result.get(name, default)
    return getattr(result, name, default)


class FirecrawlClient:
    """
    Async facade over one FirecrawlApp instance.

    SDK calls block, so they run in the default executor.
    """

    def __init__(
        self,
        api_key: str,
        app_factory: Callable[..., Any] = FirecrawlApp
    ) -> None:
        self._app: Optional[Any] = app_factory(api_key=api_key)

    async def __aenter__(self) -> "FirecrawlClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        self._app = None

    @property
    def closed(self) -> bool:
        return self._app is None

    async def _run(self, method: str, *args: Any, **kwargs: Any) -> Any:
        if self._app is None:
            raise RuntimeError("Firecrawl client is closed")
        call = functools.partial(getattr(self._app, method), *args, **kwargs)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, call)

    async def extract(self, url: str, prompt: str, schema: dict[str, Any]) -> Any:
        """Run a structured extraction against one URL."""
        logger.debug("Firecrawl extract", url=url)
        return await self._run("extract", [url], prompt=prompt, schema=schema)

    async def search(self, query: str, limit: int = 3) -> Any:
        """Run a web search."""
        logger.debug("Firecrawl search", query=query, limit=limit)
        return await self._run("search", query, limit=limit)
