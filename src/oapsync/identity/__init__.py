"""Identity resolution: persistent OAP identifiers for publication groups."""

from oapsync.identity.ezid import (
    DEFAULT_EZID_URL,
    DEFAULT_SHOULDER,
    EzidClient,
    Minter,
    MintError,
    encode_anvl,
)
from oapsync.identity.resolver import (
    IdentityResolver,
    Resolution,
    build_mint_metadata,
)

__all__ = [
    "DEFAULT_EZID_URL",
    "DEFAULT_SHOULDER",
    "EzidClient",
    "IdentityResolver",
    "MintError",
    "Minter",
    "Resolution",
    "build_mint_metadata",
    "encode_anvl",
]
