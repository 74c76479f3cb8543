"""JWT-bearer assertion construction.

The assertion is assembled by hand because the private key never leaves
Google: only the signing input is sent to the IAM signBlob API, and the
returned signature is appended here.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

JWT_HEADER = {"alg": "RS256", "typ": "JWT"}


def unpadded_b64encode(data: str | bytes) -> str:
    """Base64-encode with the URL-safe alphabet and strip trailing padding."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _to_json(value: dict[str, Any]) -> str:
    return json.dumps(value, separators=(",", ":"))


@dataclass(frozen=True)
class AssertionClaims:
    """Claim set of a JWT-bearer assertion.

    Attributes:
        audience: Token endpoint URL the assertion is exchanged at.
        issuer: Service account email that signs the assertion.
        subject: Identity the token is issued for (the issuer unless impersonating).
        scope: Space-separated OAuth scopes.
        issued_at: Unix timestamp the assertion was created.
        expires_at: Unix timestamp the requested token expires.
    """

    audience: str
    issuer: str
    subject: str
    scope: str
    issued_at: int
    expires_at: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON claim payload."""
        return {
            "aud": self.audience,
            "exp": self.expires_at,
            "iat": self.issued_at,
            "iss": self.issuer,
            "scope": self.scope,
            "sub": self.subject,
        }


def build_claims(
    *,
    audience: str,
    service_account_email: str,
    scopes: Sequence[str],
    subject: str | None,
    issued_at: int,
    expires_at: int,
) -> AssertionClaims:
    """Build the claim set, defaulting the subject to the service account."""
    return AssertionClaims(
        audience=audience,
        issuer=service_account_email,
        subject=subject or service_account_email,
        scope=" ".join(scopes),
        issued_at=issued_at,
        expires_at=expires_at,
    )


def build_signing_input(claims: AssertionClaims) -> str:
    """Return ``<header>.<payload>``, each part unpadded base64."""
    header = unpadded_b64encode(_to_json(JWT_HEADER))
    payload = unpadded_b64encode(_to_json(claims.to_dict()))
    return f"{header}.{payload}"


def assemble_assertion(signing_input: str, signature: bytes) -> str:
    """Append the encoded signature to the signing input."""
    return f"{signing_input}.{unpadded_b64encode(signature)}"
