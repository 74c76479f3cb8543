"""Ambient identity discovery.

Wraps google.auth.default() and classifies what it finds:
- Service account key file -> KeyFileIdentity
- GCE / Cloud Run / GKE metadata server -> MetadataServerIdentity

Anything else (user credentials, impersonated or external accounts) is
rejected with UnsupportedIdentityError. google-auth is synchronous, so every
call into it runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

import google.auth
from google.auth import compute_engine
from google.auth.transport import requests as google_requests
from google.oauth2 import service_account
from loguru import logger

from googleapis_authenticator.exceptions import UnsupportedIdentityError

# Broad scope used only to classify the environment and to call signBlob
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# Email reported by compute credentials before their metadata is fetched
DEFAULT_SERVICE_ACCOUNT_ALIAS = "default"

CredentialsLoader = Callable[..., tuple[Any, str | None]]


class IdentityKind(Enum):
    """Kind of identity available in the environment."""

    KEY_FILE = "key_file"
    METADATA_SERVER = "metadata_server"


@dataclass(frozen=True)
class KeyFileIdentity:
    """Identity backed by a service account JSON key file."""

    credentials: Any
    kind: Literal[IdentityKind.KEY_FILE] = field(default=IdentityKind.KEY_FILE, init=False)


@dataclass(frozen=True)
class MetadataServerIdentity:
    """Identity provided by the metadata server.

    Attributes:
        service_account_email: Resolved email of the attached service account.
        credentials: Ambient credentials, used to authorize signBlob.
    """

    service_account_email: str
    credentials: Any
    kind: Literal[IdentityKind.METADATA_SERVER] = field(
        default=IdentityKind.METADATA_SERVER, init=False
    )


AmbientIdentity = KeyFileIdentity | MetadataServerIdentity


class AmbientIdentityDiscovery:
    """Loads Application Default Credentials and classifies them.

    The ambient credentials are loaded once and reused; key-file credentials
    for the caller's scopes are loaded fresh on every request.
    """

    def __init__(self, credentials_loader: CredentialsLoader = google.auth.default) -> None:
        """Initialize discovery.

        Args:
            credentials_loader: Callable with the google.auth.default()
                signature (injectable for testing).
        """
        self._load = credentials_loader
        self._ambient_creds: Any = None

    async def discover(self) -> AmbientIdentity:
        """Classify the ambient identity.

        Raises:
            UnsupportedIdentityError: If the credentials are of another type
        """
        credentials = await self._get_ambient_credentials()

        if isinstance(credentials, service_account.Credentials):
            return KeyFileIdentity(credentials=credentials)

        if isinstance(credentials, compute_engine.Credentials):
            email = await self._resolve_service_account_email(credentials)
            return MetadataServerIdentity(service_account_email=email, credentials=credentials)

        raise UnsupportedIdentityError(type(credentials).__name__)

    async def load_key_file_credentials(
        self, scopes: Sequence[str], subject: str | None = None
    ) -> Any:
        """Load key-file credentials bound to the caller's scopes.

        Args:
            scopes: OAuth scopes for the credentials
            subject: Optional user to impersonate via domain-wide delegation
        """
        credentials, _ = await asyncio.to_thread(self._load, scopes=list(scopes))
        if subject:
            credentials = credentials.with_subject(subject)
        return credentials

    async def _get_ambient_credentials(self) -> Any:
        if self._ambient_creds is None:
            self._ambient_creds, project_id = await asyncio.to_thread(
                self._load, scopes=[CLOUD_PLATFORM_SCOPE]
            )
            logger.debug(
                "Loaded application default credentials",
                extra={
                    "credentials_type": type(self._ambient_creds).__name__,
                    "project_id": project_id,
                },
            )
        return self._ambient_creds

    async def _resolve_service_account_email(self, credentials: Any) -> str:
        # Refreshing fetches the account info from the metadata server
        if credentials.service_account_email == DEFAULT_SERVICE_ACCOUNT_ALIAS:
            await asyncio.to_thread(credentials.refresh, google_requests.Request())
        email: str = credentials.service_account_email
        return email
