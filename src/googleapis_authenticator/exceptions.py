"""Exceptions raised by googleapis_authenticator.

Network failures from httpx, google-auth and the IAM client are not wrapped;
they reach the caller unchanged.
"""

from __future__ import annotations


class AuthenticatorError(Exception):
    """Base exception for authenticator errors."""

    pass


class UnsupportedIdentityError(AuthenticatorError):
    """Raised when the ambient identity is neither a key file nor a metadata server.

    This is not retryable: the environment has to be configured with one of
    the two supported identity types.
    """

    def __init__(self, credentials_type: str) -> None:
        self.credentials_type = credentials_type
        super().__init__(f"Unexpected authentication type: {credentials_type}")


class MalformedResponseError(AuthenticatorError):
    """Raised when the token endpoint response carries no usable access token."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code
