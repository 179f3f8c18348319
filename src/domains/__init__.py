"""Tool Domains.

Each domain contains:
- Tool definitions with JSON input schemas
- Handlers returning ToolOk/ToolFailed outcomes
- A per-call resource factory when it talks to an external service

Domains are isolated: no cross-domain calls and no shared state.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from domains.base import BaseDomain
    from mcp_server.registry import ToolRegistry
    from shared.config import Settings


def build_domains(settings: "Settings") -> list["BaseDomain"]:
    """Create every tool domain from the application settings."""
    from domains.arithmetic import ArithmeticDomain
    from domains.web import WebDomain
    from domains.pricing import PricingDomain

    return [
        ArithmeticDomain(settings),
        WebDomain(settings),
        PricingDomain(settings),
    ]


def register_all_domains(
    registry: "ToolRegistry",
    settings: "Settings",
    domains: Optional[list["BaseDomain"]] = None
) -> None:
    """
    Register the tools of all domains and freeze the registry.

    This is called once while the application is built.
    """
    for domain in domains if domains is not None else build_domains(settings):
        registry.register_many(domain.tools)
    registry.freeze()


__all__ = ["build_domains", "register_all_domains"]
