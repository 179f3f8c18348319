"""Tests for tool domains."""

from unittest.mock import Mock

import httpx
import pytest

from shared.config import Settings
from shared.models import ToolCallRequest


def make_settings(**overrides) -> Settings:
    return Settings(api_key="secret", **overrides)


def make_dispatcher(*domains):
    from mcp_server.audit import AuditLogger
    from mcp_server.dispatcher import ToolDispatcher
    from mcp_server.registry import ToolRegistry

    registry = ToolRegistry()
    for domain in domains:
        registry.register_many(domain.tools)
    registry.freeze()
    return ToolDispatcher(registry, audit_logger=AuditLogger(enabled=False))


async def call(dispatcher, tool_name, arguments):
    envelope = await dispatcher.dispatch(ToolCallRequest(tool_name=tool_name, arguments=arguments))
    return envelope.text


class TestDomainRegistration:
    """Tests for building the built-in domains."""

    def test_all_tools_registered(self):
        from domains import register_all_domains
        from mcp_server.registry import ToolRegistry

        registry = ToolRegistry()
        register_all_domains(registry, make_settings())

        assert [tool.name for tool in registry] == [
            "add",
            "calculate",
            "scrape_webpage",
            "analyze_url",
            "firecrawl_price_extract",
            "firecrawl_find_product_url",
        ]
        assert registry.frozen

    def test_tools_listed_without_firecrawl_key(self):
        from domains.pricing import PricingDomain

        tools = PricingDomain(make_settings(firecrawl_api_key=None)).tools

        assert len(tools) == 2


class TestArithmeticDomain:
    """Tests for the arithmetic tools."""

    def setup_method(self):
        from domains.arithmetic import ArithmeticDomain

        self.dispatcher = make_dispatcher(ArithmeticDomain(make_settings()))

    @pytest.mark.parametrize("value,expected", [
        (5, "5"),
        (5.0, "5"),
        (-3.0, "-3"),
        (2.5, "2.5"),
        (0.1 + 0.2, "0.30000000000000004"),
        (float("nan"), "NaN"),
        (float("inf"), "Infinity"),
        (float("-inf"), "-Infinity"),
        (1e21, "1e+21"),
    ])
    def test_format_number(self, value, expected):
        from domains.arithmetic import format_number

        assert format_number(value) == expected

    @pytest.mark.asyncio
    async def test_add(self):
        assert await call(self.dispatcher, "add", {"a": 2, "b": 3}) == "5"
        assert await call(self.dispatcher, "add", {"a": 1.5, "b": 1}) == "2.5"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation,a,b,expected", [
        ("add", 1, 2, "3"),
        ("subtract", 10, 4, "6"),
        ("multiply", 2.5, 4, "10"),
        ("divide", 10, 2, "5"),
        ("divide", 1, 3, "0.3333333333333333"),
    ])
    async def test_calculate(self, operation, a, b, expected):
        text = await call(self.dispatcher, "calculate", {"operation": operation, "a": a, "b": b})

        assert text == expected

    @pytest.mark.asyncio
    async def test_divide_by_zero(self):
        text = await call(self.dispatcher, "calculate", {"operation": "divide", "a": 1, "b": 0})

        assert text == "Error: Cannot divide by zero"

    @pytest.mark.asyncio
    async def test_unsupported_operation_rejected(self):
        text = await call(self.dispatcher, "calculate", {"operation": "power", "a": 2, "b": 3})

        assert text.startswith("Error: Invalid arguments for tool 'calculate': operation:")

    @pytest.mark.asyncio
    async def test_missing_operand(self):
        text = await call(self.dispatcher, "add", {"a": 1})

        assert text == "Error: Invalid arguments for tool 'add': b: required field is missing"


class TestWebDomain:
    """Tests for the scraping and URL analysis tools."""

    def make_dispatcher(self, handler):
        from domains.web import WebDomain

        self.requests = []

        def recording_handler(request):
            self.requests.append(request)
            return handler(request)

        domain = WebDomain(make_settings(), transport=httpx.MockTransport(recording_handler))
        return make_dispatcher(domain)

    def test_html_to_text(self):
        from domains.web import html_to_text

        html = (
            "<html><head><style>p { color: red; }</style>"
            "<script type='text/javascript'>var x = '<b>';</script></head>"
            "<body><p>Hello</p>\n\n  <b>World</b></body></html>"
        )

        assert html_to_text(html) == "Hello World"

    @pytest.mark.asyncio
    async def test_scrape_text(self):
        html = "<html><body><h1>Title</h1><script>track()</script><p>Body text</p></body></html>"
        dispatcher = self.make_dispatcher(lambda request: httpx.Response(200, text=html))

        text = await call(dispatcher, "scrape_webpage", {"url": "https://a.test/page"})

        assert text == (
            "URL: https://a.test/page\n"
            "Length: 15 characters\n\n"
            "Content:\n"
            "Title Body text"
        )
        assert self.requests[0].headers["user-agent"] == "Mozilla/5.0 (compatible; MCP-Scraper/1.0)"

    @pytest.mark.asyncio
    async def test_scrape_raw_html_with_custom_agent(self):
        html = "<p>Hi</p>"
        dispatcher = self.make_dispatcher(lambda request: httpx.Response(200, text=html))

        text = await call(dispatcher, "scrape_webpage", {
            "url": "https://a.test/",
            "extract_text": False,
            "user_agent": "TestAgent/1.0",
            "selector": "p",
        })

        assert text == "URL: https://a.test/\nHTML Length: 9 characters\n\nHTML:\n<p>Hi</p>"
        assert self.requests[0].headers["user-agent"] == "TestAgent/1.0"

    @pytest.mark.asyncio
    async def test_scrape_http_error(self):
        dispatcher = self.make_dispatcher(lambda request: httpx.Response(404))

        text = await call(dispatcher, "scrape_webpage", {"url": "https://a.test/missing"})

        assert text == "HTTP Error: 404 Not Found"

    @pytest.mark.asyncio
    async def test_scrape_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        dispatcher = self.make_dispatcher(handler)

        text = await call(dispatcher, "scrape_webpage", {"url": "https://down.test/"})

        assert text == "Error scraping https://down.test/: boom"

    @pytest.mark.asyncio
    async def test_scrape_invalid_url(self):
        dispatcher = self.make_dispatcher(lambda request: httpx.Response(200))

        text = await call(dispatcher, "scrape_webpage", {"url": "not-a-url"})

        assert text.startswith("Error: Invalid arguments for tool 'scrape_webpage': url:")
        assert self.requests == []

    @pytest.mark.asyncio
    async def test_analyze_url(self):
        dispatcher = self.make_dispatcher(lambda request: httpx.Response(
            200,
            headers={"Content-Type": "text/html; charset=utf-8", "Server": "nginx"},
        ))

        text = await call(dispatcher, "analyze_url", {"url": "https://a.test/"})

        lines = text.split("\n")
        assert lines[0] == "URL Analysis: https://a.test/"
        assert lines[1] == "Status: 200 OK"
        assert "Content-Type: text/html; charset=utf-8" in lines
        assert "Server: nginx" in lines
        assert "Last-Modified: unknown" in lines
        assert self.requests[0].method == "HEAD"
        assert self.requests[0].headers["user-agent"] == "Mozilla/5.0 (compatible; MCP-Analyzer/1.0)"

    @pytest.mark.asyncio
    async def test_analyze_url_failure(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        dispatcher = self.make_dispatcher(handler)

        text = await call(dispatcher, "analyze_url", {"url": "https://slow.test/"})

        assert text == "Error analyzing https://slow.test/: timed out"


class FakeFirecrawl:
    """Async stand-in for FirecrawlClient."""

    def __init__(self, extract_result=None, search_result=None, error=None):
        self.extract_result = extract_result
        self.search_result = search_result
        self.error = error
        self.calls = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def extract(self, url, prompt, schema):
        self.calls.append(("extract", url, prompt))
        if self.error:
            raise self.error
        return self.extract_result

    async def search(self, query, limit=3):
        self.calls.append(("search", query, limit))
        if self.error:
            raise self.error
        return self.search_result


class TestPricingDomain:
    """Tests for the Firecrawl price tools."""

    def make_dispatcher(self, fake, api_key="fc-key"):
        from domains.pricing import PricingDomain

        self.keys = []

        def factory(key):
            self.keys.append(key)
            return fake

        domain = PricingDomain(make_settings(firecrawl_api_key=api_key), client_factory=factory)
        return make_dispatcher(domain)

    @pytest.mark.asyncio
    async def test_price_found(self):
        fake = FakeFirecrawl(extract_result={"success": True, "data": {"price": "29.99"}})
        dispatcher = self.make_dispatcher(fake)

        text = await call(dispatcher, "firecrawl_price_extract", {"url": "https://shop.test/item"})

        assert text == "29.99"
        assert self.keys == ["fc-key"]
        assert fake.closed
        assert "main product price" in fake.calls[0][2]

    @pytest.mark.asyncio
    async def test_price_prompt_names_product(self):
        fake = FakeFirecrawl(extract_result={"success": True, "data": {"price": "5"}})
        dispatcher = self.make_dispatcher(fake)

        await call(dispatcher, "firecrawl_price_extract", {
            "url": "https://shop.test/item",
            "product_name": "Blue Kettle",
        })

        assert 'price for "Blue Kettle"' in fake.calls[0][2]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("result", [
        {"success": False, "data": {"price": "29.99"}},
        {"success": True, "data": {}},
        {"success": True, "data": None},
        None,
    ])
    async def test_price_not_found(self, result):
        dispatcher = self.make_dispatcher(FakeFirecrawl(extract_result=result))

        text = await call(dispatcher, "firecrawl_price_extract", {"url": "https://shop.test/item"})

        assert text == "Price not found"

    @pytest.mark.asyncio
    async def test_price_extract_failure(self):
        fake = FakeFirecrawl(error=RuntimeError("quota exceeded"))
        dispatcher = self.make_dispatcher(fake)

        text = await call(dispatcher, "firecrawl_price_extract", {"url": "https://shop.test/item"})

        assert text == "Error extracting price: quota exceeded"
        assert fake.closed

    @pytest.mark.asyncio
    async def test_missing_key(self):
        fake = FakeFirecrawl()
        dispatcher = self.make_dispatcher(fake, api_key=None)

        price = await call(dispatcher, "firecrawl_price_extract", {"url": "https://shop.test/item"})
        url = await call(dispatcher, "firecrawl_find_product_url", {
            "product_name": "kettle",
            "retailer": "target",
        })

        assert price == "Error: FIRECRAWL_API_KEY environment variable not configured"
        assert url == price
        assert self.keys == []
        assert fake.calls == []

    @pytest.mark.asyncio
    async def test_find_product_url(self):
        fake = FakeFirecrawl(search_result={
            "success": True,
            "data": [{"url": "https://www.bestbuy.com/site/tv"}, {"url": "https://other"}],
        })
        dispatcher = self.make_dispatcher(fake)

        text = await call(dispatcher, "firecrawl_find_product_url", {
            "product_name": "55 inch TV",
            "retailer": "bestbuy",
        })

        assert text == "https://www.bestbuy.com/site/tv"
        assert fake.calls == [("search", "site:bestbuy.com 55 inch TV", 3)]

    @pytest.mark.asyncio
    async def test_find_product_url_without_url(self):
        dispatcher = self.make_dispatcher(FakeFirecrawl(search_result={
            "success": True,
            "data": [{"title": "TV"}],
        }))

        text = await call(dispatcher, "firecrawl_find_product_url", {
            "product_name": "TV",
            "retailer": "walmart",
        })

        assert text == "URL not available"

    @pytest.mark.asyncio
    async def test_find_product_url_no_hits(self):
        dispatcher = self.make_dispatcher(FakeFirecrawl(search_result={"success": True, "data": []}))

        text = await call(dispatcher, "firecrawl_find_product_url", {
            "product_name": "TV",
            "retailer": "amazon",
        })

        assert text == "URL not found"

    @pytest.mark.asyncio
    async def test_unknown_retailer_rejected(self):
        fake = FakeFirecrawl()
        dispatcher = self.make_dispatcher(fake)

        text = await call(dispatcher, "firecrawl_find_product_url", {
            "product_name": "TV",
            "retailer": "ebay",
        })

        assert text.startswith("Error: Invalid arguments for tool 'firecrawl_find_product_url': retailer:")
        assert fake.calls == []

    @pytest.mark.asyncio
    async def test_find_product_url_failure(self):
        dispatcher = self.make_dispatcher(FakeFirecrawl(error=ConnectionError("unreachable")))

        text = await call(dispatcher, "firecrawl_find_product_url", {
            "product_name": "TV",
            "retailer": "target",
        })

        assert text == "Error finding URL: unreachable"


class TestFirecrawlClient:
    """Tests for the async Firecrawl facade."""

    @pytest.mark.asyncio
    async def test_calls_sdk(self):
        from domains.pricing.firecrawl import FirecrawlClient

        app = Mock()
        app.extract.return_value = {"success": True, "data": {"price": "1"}}
        app.search.return_value = {"success": True, "data": []}
        app_factory = Mock(return_value=app)

        async with FirecrawlClient("fc-key", app_factory=app_factory) as client:
            extracted = await client.extract("https://a.test", prompt="p", schema={"type": "object"})
            searched = await client.search("site:target.com tv", limit=3)

        app_factory.assert_called_once_with(api_key="fc-key")
        app.extract.assert_called_once_with(["https://a.test"], prompt="p", schema={"type": "object"})
        app.search.assert_called_once_with("site:target.com tv", limit=3)
        assert extracted["data"]["price"] == "1"
        assert searched["success"]
        assert client.closed

    @pytest.mark.asyncio
    async def test_closed_client_refuses_calls(self):
        from domains.pricing.firecrawl import FirecrawlClient

        client = FirecrawlClient("fc-key", app_factory=Mock())
        await client.close()

        with pytest.raises(RuntimeError, match="closed"):
            await client.search("query")

    def test_result_field(self):
        from domains.pricing.firecrawl import result_field

        class Response:
            success = True

        assert result_field({"success": True}, "success") is True
        assert result_field(Response(), "success") is True
        assert result_field(Response(), "data", []) == []
        assert result_field(None, "data") is None
