"""Authentication for the MCP gateway.

A single shared secret protects every tool-call endpoint. The credential
may arrive in one of four places, checked in order:

1. ``Authorization: Bearer <key>``
2. ``X-API-Key: <key>``
3. ``api-key: <key>``
4. ``?api_key=<key>``
"""

import hmac
from typing import Any, Callable, Optional

from shared.errors import ConfigurationError
from shared.logging import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "
API_KEY_HEADER = "X-API-Key"
API_KEY_HEADER_LOWER = "api-key"
API_KEY_QUERY_PARAM = "api_key"

CredentialExtractor = Callable[[Any], Optional[str]]


def _trimmed(value: Optional[str]) -> Optional[str]:
    """Surrounding whitespace is not part of a credential."""
    if value is None:
        return None
    return value.strip() or None


def from_bearer_header(request: Any) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header."""
    value = request.headers.get("Authorization")
    if value and value.startswith(BEARER_PREFIX):
        return _trimmed(value[len(BEARER_PREFIX):])
    return None


def from_api_key_header(request: Any) -> Optional[str]:
    return _trimmed(request.headers.get(API_KEY_HEADER))


def from_lowercase_header(request: Any) -> Optional[str]:
    return _trimmed(request.headers.get(API_KEY_HEADER_LOWER))


def from_query_param(request: Any) -> Optional[str]:
    return _trimmed(request.query_params.get(API_KEY_QUERY_PARAM))


CREDENTIAL_EXTRACTORS: tuple[CredentialExtractor, ...] = (
    from_bearer_header,
    from_api_key_header,
    from_lowercase_header,
    from_query_param,
)


def extract_credential(
    request: Any,
    extractors: tuple[CredentialExtractor, ...] = CREDENTIAL_EXTRACTORS
) -> Optional[str]:
    """
    Extract the candidate credential from a request.

    Extractors are tried in order; the first non-empty value wins.

    Args:
        request: Object exposing ``headers`` and ``query_params`` mappings,
            such as a Starlette Request

    Returns:
        The credential, or None when no location carries one
    """
    for extractor in extractors:
        value = extractor(request)
        if value:
            return value
    return None


class ApiKeyGate:
    """
    Shared-secret authentication gate.

    Built with the configured key at application startup. A gate without a
    key is a configuration error, reported distinctly from a wrong key.
    """

    def __init__(
        self,
        api_key: Optional[str],
        extractors: tuple[CredentialExtractor, ...] = CREDENTIAL_EXTRACTORS
    ) -> None:
        self._api_key = api_key
        self._extractors = extractors

    def authenticate(self, request: Any) -> bool:
        """
        Check the request's credential against the configured key.

        Returns:
            True on an exact match, False for a wrong or absent credential

        Raises:
            ConfigurationError: If no API key is configured
        """
        if not self._api_key:
            raise ConfigurationError("API_KEY environment variable must be configured")

        candidate = extract_credential(request, self._extractors)
        if candidate is None:
            logger.info("Request without credential rejected")
            return False

        matched = hmac.compare_digest(
            candidate.encode("utf-8"),
            self._api_key.encode("utf-8")
        )
        if not matched:
            logger.warning("Request with invalid credential rejected")
        return matched
