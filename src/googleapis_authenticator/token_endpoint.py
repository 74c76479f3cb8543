"""Client for the OAuth 2.0 token endpoint (JWT-bearer grant)."""

from __future__ import annotations

import ssl
from typing import Any

import certifi
import httpx

from googleapis_authenticator.exceptions import MalformedResponseError

TOKEN_URI = "https://accounts.google.com/o/oauth2/token"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEFAULT_TIMEOUT = 60


class TokenEndpointClient:
    """Exchanges signed assertions for access tokens.

    HTTP errors are not translated: httpx.HTTPStatusError and
    httpx.RequestError reach the caller as raised by httpx.
    """

    def __init__(
        self,
        token_uri: str = TOKEN_URI,
        timeout: int = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            token_uri: Token endpoint URL, also used as the assertion audience
            timeout: Request timeout in seconds
            http_client: Optional httpx client (injectable for testing).
                An injected client is not closed by close().
        """
        self.token_uri = token_uri
        self._owns_client = http_client is None
        if http_client is None:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            http_client = httpx.AsyncClient(
                timeout=timeout,
                verify=ssl_context,
                headers={"Accept": "application/json"},
            )
        self._client = http_client

    async def exchange(self, assertion: str) -> str:
        """POST the assertion and return the issued access token.

        Raises:
            httpx.HTTPStatusError: If the endpoint answers with an error status
            httpx.RequestError: On network failure
            MalformedResponseError: If the response has no access_token
        """
        response = await self._client.post(
            self.token_uri,
            data={"assertion": assertion, "grant_type": JWT_BEARER_GRANT_TYPE},
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        response.raise_for_status()

        try:
            body: Any = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                "Token endpoint returned a non-JSON response", response.status_code
            ) from e

        token = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            raise MalformedResponseError(
                "Token endpoint response is missing access_token", response.status_code
            )
        return token

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
