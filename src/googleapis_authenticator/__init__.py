"""googleapis_authenticator - Google API credentials for key-file and metadata-server environments.

With a service account key file, credentials come straight from google-auth.
On the metadata server, a JWT-bearer assertion is signed through IAM signBlob
and exchanged for an access token, which is cached until shortly before it
expires.
"""

__version__ = "0.1.0"

from googleapis_authenticator.authenticator import (
    Authenticator,
    CachedToken,
    parse_scopes,
)
from googleapis_authenticator.discovery import (
    AmbientIdentity,
    AmbientIdentityDiscovery,
    IdentityKind,
    KeyFileIdentity,
    MetadataServerIdentity,
)
from googleapis_authenticator.exceptions import (
    AuthenticatorError,
    MalformedResponseError,
    UnsupportedIdentityError,
)
from googleapis_authenticator.signer import IAMBlobSigner
from googleapis_authenticator.token_endpoint import TOKEN_URI, TokenEndpointClient

__all__ = [
    "TOKEN_URI",
    "AmbientIdentity",
    "AmbientIdentityDiscovery",
    "Authenticator",
    "AuthenticatorError",
    "CachedToken",
    "IAMBlobSigner",
    "IdentityKind",
    "KeyFileIdentity",
    "MalformedResponseError",
    "MetadataServerIdentity",
    "TokenEndpointClient",
    "UnsupportedIdentityError",
    "__version__",
    "parse_scopes",
]
