"""Google APIs authentication for key-file and metadata-server environments.

This module provides the Authenticator class which:
1. Inspects Application Default Credentials to find out which identity is available
2. With a service account key file, returns key-file credentials for the requested scopes
3. On the metadata server, signs a JWT-bearer assertion through IAM signBlob,
   exchanges it for an access token and caches that token until near expiry

Key design decisions:
- The metadata-server identity has no private key, so domain-wide delegation
  (subject) needs a hand-built assertion signed remotely
- Token lifetime is fixed at one hour; the exp claim requests exactly that
- One exchange in flight per instance; concurrent callers share its result
- Dependencies are injected via constructor for testability
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from google.auth.transport import requests as google_requests
from google.oauth2.credentials import Credentials as BearerCredentials
from loguru import logger

from googleapis_authenticator.assertion import (
    assemble_assertion,
    build_claims,
    build_signing_input,
)
from googleapis_authenticator.discovery import (
    AmbientIdentity,
    AmbientIdentityDiscovery,
    IdentityKind,
    MetadataServerIdentity,
)
from googleapis_authenticator.exceptions import UnsupportedIdentityError
from googleapis_authenticator.signer import IAMBlobSigner
from googleapis_authenticator.token_endpoint import TokenEndpointClient

if TYPE_CHECKING:
    from google.auth.credentials import Credentials

    from googleapis_authenticator.config import Settings

# Token lifetime requested in the assertion (1 hour)
DEFAULT_TOKEN_LIFETIME = 3600

# Cached tokens are refreshed this many seconds before they expire
SKEW_SECONDS = 60


class DiscoveryProtocol(Protocol):
    """Protocol for the ambient identity discovery needed by Authenticator."""

    async def discover(self) -> AmbientIdentity: ...

    async def load_key_file_credentials(
        self, scopes: Sequence[str], subject: str | None = None
    ) -> Any: ...


class SignerProtocol(Protocol):
    """Protocol for the remote signing needed by Authenticator."""

    async def sign_blob(
        self, service_account_email: str, payload: bytes, credentials: Any
    ) -> bytes: ...

    async def close(self) -> None: ...


class TokenEndpointProtocol(Protocol):
    """Protocol for the token exchange needed by Authenticator."""

    token_uri: str

    async def exchange(self, assertion: str) -> str: ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class CachedToken:
    """Access token issued for the metadata-server identity."""

    token: str
    expires_at: int

    def is_valid(self, now: int, skew: int = SKEW_SECONDS) -> bool:
        """Check if token is still usable at ``now`` with a safety margin."""
        return now < self.expires_at - skew


def parse_scopes(scopes: str | Sequence[str]) -> tuple[str, ...]:
    """Normalize a single scope or a sequence of scopes to a tuple.

    Raises:
        ValueError: If no scope is given or a scope is empty
    """
    parsed = (scopes,) if isinstance(scopes, str) else tuple(scopes)
    if not parsed or not all(parsed):
        raise ValueError("At least one non-empty scope is required")
    return parsed


class Authenticator:
    """Produces credentials for Google APIs in either deployment shape.

    Example:
        async with Authenticator(["https://www.googleapis.com/auth/drive"]) as auth:
            headers = await auth.get_authorization_headers()
    """

    def __init__(
        self,
        scopes: str | Sequence[str],
        subject: str | None = None,
        *,
        discovery: DiscoveryProtocol | None = None,
        signer: SignerProtocol | None = None,
        token_endpoint: TokenEndpointProtocol | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize Authenticator.

        Args:
            scopes: OAuth scope or scopes the credentials are issued for
            subject: Optional user to impersonate (domain-wide delegation).
                Defaults to the service account itself.
            discovery: Ambient identity discovery (injectable for testing)
            signer: Remote blob signer (injectable for testing)
            token_endpoint: Token endpoint client (injectable for testing)
            clock: Returns the current Unix time (injectable for testing)
        """
        self._scopes = parse_scopes(scopes)
        self._subject = subject
        self._discovery = discovery or AmbientIdentityDiscovery()
        self._signer = signer or IAMBlobSigner()
        self._token_endpoint = token_endpoint or TokenEndpointClient()
        self._clock = clock
        self._cached_token: CachedToken | None = None
        self._exchange_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> Authenticator:
        """Create an Authenticator from settings."""
        return cls(
            settings.get_scopes(),
            settings.subject or None,
            token_endpoint=TokenEndpointClient(
                token_uri=settings.token_uri, timeout=settings.http_timeout
            ),
        )

    @property
    def scopes(self) -> tuple[str, ...]:
        return self._scopes

    @property
    def subject(self) -> str | None:
        return self._subject

    @property
    def cached_token(self) -> CachedToken | None:
        return self._cached_token

    async def get_credentials(self) -> Credentials:
        """Get credentials for the configured scopes and subject.

        Returns:
            Key-file credentials, or bearer credentials wrapping a cached or
            freshly exchanged access token

        Raises:
            UnsupportedIdentityError: If the ambient identity is not supported
        """
        identity = await self._discovery.discover()

        match identity.kind:
            case IdentityKind.KEY_FILE:
                return await self._authenticate_key_file()
            case IdentityKind.METADATA_SERVER:
                return await self._authenticate_metadata_server(identity)
            case _:
                raise UnsupportedIdentityError(str(identity.kind))

    async def get_access_token(self) -> str:
        """Get a valid access token string."""
        credentials = await self._get_valid_credentials()
        token: str = credentials.token
        return token

    async def get_authorization_headers(self) -> dict[str, str]:
        """Get request headers carrying the access token."""
        credentials = await self._get_valid_credentials()
        headers: dict[str, str] = {}
        credentials.apply(headers)
        return headers

    async def close(self) -> None:
        """Close the signer and token endpoint clients."""
        await self._signer.close()
        await self._token_endpoint.close()

    async def __aenter__(self) -> Authenticator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @staticmethod
    def generate_client(access_token: str) -> BearerCredentials:
        """Wrap an access token in credentials.

        The credentials carry only the token: no refresh token, scopes or
        expiry. Refreshing is done by Authenticator through its cache.
        """
        return BearerCredentials(token=access_token)

    async def _get_valid_credentials(self) -> Credentials:
        credentials = await self.get_credentials()
        if not credentials.valid:
            # Key-file credentials fetch their own token on refresh
            await asyncio.to_thread(credentials.refresh, google_requests.Request())
        return credentials

    async def _authenticate_key_file(self) -> Credentials:
        credentials: Credentials = await self._discovery.load_key_file_credentials(
            self._scopes, self._subject
        )
        return credentials

    async def _authenticate_metadata_server(
        self, identity: MetadataServerIdentity
    ) -> BearerCredentials:
        async with self._exchange_lock:
            now = int(self._clock())
            cached = self._cached_token
            if cached is not None and cached.is_valid(now):
                logger.debug(
                    "Using cached access token",
                    extra={"expires_in": cached.expires_at - now},
                )
                return self.generate_client(cached.token)

            cached = await self._exchange_token(identity, now)
            self._cached_token = cached

        return self.generate_client(cached.token)

    async def _exchange_token(self, identity: MetadataServerIdentity, now: int) -> CachedToken:
        """Sign an assertion via IAM and exchange it at the token endpoint."""
        sa_email = identity.service_account_email
        expires_at = now + DEFAULT_TOKEN_LIFETIME

        claims = build_claims(
            audience=self._token_endpoint.token_uri,
            service_account_email=sa_email,
            scopes=self._scopes,
            subject=self._subject,
            issued_at=now,
            expires_at=expires_at,
        )
        signing_input = build_signing_input(claims)

        signature = await self._signer.sign_blob(
            sa_email, signing_input.encode("ascii"), identity.credentials
        )
        assertion = assemble_assertion(signing_input, signature)

        token = await self._token_endpoint.exchange(assertion)

        logger.info(
            "Access token exchanged",
            extra={
                "service_account": sa_email,
                "subject": claims.subject,
                "expires_at": expires_at,
            },
        )

        return CachedToken(token=token, expires_at=expires_at)
