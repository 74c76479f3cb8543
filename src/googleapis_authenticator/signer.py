"""Remote signing through the IAM Credentials signBlob API.

The service account's private key is managed by Google; the metadata server
identity can ask IAM to sign bytes with it but never sees the key.
"""

from __future__ import annotations

from typing import Any

from google.cloud.iam_credentials_v1 import IAMCredentialsAsyncClient, SignBlobRequest
from loguru import logger


class IAMBlobSigner:
    """Signs blobs with a service account's Google-managed key."""

    def __init__(self, iam_client: IAMCredentialsAsyncClient | None = None) -> None:
        """Initialize the signer.

        Args:
            iam_client: Optional IAM Credentials client (injectable for testing).
                If not provided, one is created on first use with the
                credentials passed to sign_blob(). An injected client is not
                closed by close().
        """
        self._iam_client = iam_client
        self._owns_client = iam_client is None

    def _get_iam_client(self, credentials: Any) -> IAMCredentialsAsyncClient:
        """Get async IAM Credentials client (lazy initialization)."""
        if self._iam_client is None:
            self._iam_client = IAMCredentialsAsyncClient(credentials=credentials)
        return self._iam_client

    async def sign_blob(
        self, service_account_email: str, payload: bytes, credentials: Any
    ) -> bytes:
        """Sign payload with the service account's key.

        Args:
            service_account_email: Account whose key signs the payload
            payload: Raw bytes to sign (sent base64-encoded on the wire)
            credentials: Credentials authorizing the signBlob call

        Returns:
            Raw signature bytes
        """
        client = self._get_iam_client(credentials)
        request = SignBlobRequest(
            name=f"projects/-/serviceAccounts/{service_account_email}",
            payload=payload,
        )
        response = await client.sign_blob(request=request)

        logger.debug(
            "Blob signed",
            extra={"service_account": service_account_email, "key_id": response.key_id},
        )
        return response.signed_blob

    async def close(self) -> None:
        """Close the IAM client if this instance created it."""
        if self._owns_client and self._iam_client is not None:
            await self._iam_client.transport.close()
            self._iam_client = None
