"""MCP Server - FastAPI Application.

Serves the tool gateway over two MCP transports, both behind the API key gate:

- ``GET /sse`` + ``POST /sse/message``: HTTP+SSE streaming transport
- ``POST /mcp`` and ``POST /``: streamable HTTP with JSON responses

The application is built by create_app from explicit Settings. A missing
API key raises ConfigurationError before anything is served.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import Settings, load_settings
from shared.errors import ConfigurationError
from shared.logging import get_logger, setup_logging
from domains import register_all_domains
from domains.base import BaseDomain
from mcp_server.audit import AuditLogger
from mcp_server.auth import ApiKeyGate
from mcp_server.dispatcher import ToolDispatcher
from mcp_server.registry import ToolRegistry
from mcp_server.server import McpTransports, build_server
from mcp_server.transport import TransportRouter

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    domains: Optional[list[BaseDomain]] = None
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Application settings; loaded from YAML and the
            environment when omitted
        domains: Tool domains to register; all built-in domains when omitted

    Raises:
        ConfigurationError: If the API key is not configured
    """
    if settings is None:
        settings = load_settings()
    if not settings.api_key:
        raise ConfigurationError("API_KEY environment variable must be configured")

    setup_logging(settings.log_level, json_output=settings.environment == "production")

    registry = ToolRegistry()
    register_all_domains(registry, settings, domains)

    dispatcher = ToolDispatcher(registry=registry, audit_logger=AuditLogger())
    server = build_server(
        registry,
        dispatcher,
        name=settings.server.name,
        version=settings.server.version,
    )
    transports = McpTransports(server)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(
            "MCP Server started",
            name=settings.server.name,
            tools=[tool.name for tool in registry],
            firecrawl_configured=bool(settings.firecrawl_api_key),
        )

        async with transports.run():
            yield

        logger.info("Shutting down MCP Server", open_streams=transports.open_streams)

    app = FastAPI(
        title=settings.server.name,
        description="MCP tool gateway",
        version=settings.server.version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.server = server
    app.state.transports = transports

    transports.mount(app)

    app.add_middleware(TransportRouter, gate=ApiKeyGate(settings.api_key))
    # Outermost, so CORS preflight is answered before the gate
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


def main():
    """Run the MCP Server."""
    import uvicorn

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        raise SystemExit(1)

    uvicorn.run(
        "mcp_server.main:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
