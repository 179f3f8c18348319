"""Pricing Domain - product price lookup through Firecrawl.

Provides:
- firecrawl_price_extract: extract a product price from a page
- firecrawl_find_product_url: find a product page at a known retailer

Both tools need FIRECRAWL_API_KEY; without it they report a configuration
error as their result instead of failing the request.
"""

from typing import Any, Callable, Optional

from shared.config import Settings
from shared.errors import ToolFailure
from shared.models import ToolCallContext, ToolDefinition, ToolFailed, ToolOk
from domains.base import BaseDomain
from domains.pricing.firecrawl import FirecrawlClient, result_field

RETAILER_SITES = {
    "walmart": "walmart.com",
    "bestbuy": "bestbuy.com",
    "target": "target.com",
    "amazon": "amazon.com",
}

SEARCH_LIMIT = 3
MISSING_KEY_MESSAGE = "Error: FIRECRAWL_API_KEY environment variable not configured"

PRICE_SCHEMA = {
    "type": "object",
    "properties": {
        "price": {
            "type": "string",
            "description": "The numerical price value",
        }
    },
    "required": ["price"],
}


def price_prompt(product_name: Optional[str] = None) -> str:
    """Extraction prompt asking for a bare numeric price."""
    if product_name:
        return (
            f'Extract the price for "{product_name}" from this webpage. '
            'Return only the numerical price value (e.g., "29.99").'
        )
    return (
        "Extract the main product price from this webpage. "
        'Return only the numerical price value (e.g., "29.99").'
    )


def search_query(product_name: str, retailer: str) -> str:
    return f"site:{RETAILER_SITES[retailer]} {product_name}"


class PricingDomain(BaseDomain):
    """Firecrawl-backed price tools."""

    name = "pricing"

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[str], Any] = FirecrawlClient
    ) -> None:
        super().__init__(settings)
        self._api_key = settings.firecrawl_api_key
        self._client_factory = client_factory

    def new_client(self) -> Any:
        """Create a Firecrawl client for a single call."""
        if not self._api_key:
            raise ToolFailure(MISSING_KEY_MESSAGE)
        return self._client_factory(self._api_key)

    @property
    def tools(self) -> list[ToolDefinition]:
        return [
            self._tool(
                name="firecrawl_price_extract",
                description="Extract the price of a product from a product page URL.",
                properties={
                    "url": {"type": "string", "format": "uri", "description": "Product page URL"},
                    "product_name": {
                        "type": "string",
                        "description": "Product to look for when the page lists several",
                    },
                },
                required=["url"],
                handler=self.price_extract,
                error_context="extracting price",
                resource_factory=self.new_client,
            ),
            self._tool(
                name="firecrawl_find_product_url",
                description="Find the product page URL for a product at a retailer.",
                properties={
                    "product_name": {"type": "string", "description": "Product to search for"},
                    "retailer": {
                        "type": "string",
                        "enum": list(RETAILER_SITES),
                        "description": "Retailer to search",
                    },
                },
                handler=self.find_product_url,
                error_context="finding URL",
                resource_factory=self.new_client,
            ),
        ]

    async def price_extract(
        self,
        arguments: dict[str, Any],
        context: ToolCallContext
    ) -> ToolOk | ToolFailed:
        client: FirecrawlClient = context.resource
        result = await client.extract(
            arguments["url"],
            prompt=price_prompt(arguments.get("product_name")),
            schema=PRICE_SCHEMA,
        )

        price = result_field(result_field(result, "data"), "price")
        if result_field(result, "success") and price:
            return self._ok(str(price))
        return self._ok("Price not found")

    async def find_product_url(
        self,
        arguments: dict[str, Any],
        context: ToolCallContext
    ) -> ToolOk:
        client: FirecrawlClient = context.resource
        result = await client.search(
            search_query(arguments["product_name"], arguments["retailer"]),
            limit=SEARCH_LIMIT,
        )

        hits = result_field(result, "data") or []
        if result_field(result, "success") and hits:
            return self._ok(result_field(hits[0], "url") or "URL not available")
        return self._ok("URL not found")
