"""Content hashing used for skip-if-unchanged synchronization."""

import hashlib

__all__ = [
    "format_sha256",
    "calculate_bytes_sha256",
]


def format_sha256(hex_digest: str) -> str:
    """Prefix a raw hex digest with ``sha256:``."""
    return f"sha256:{hex_digest}"


def calculate_bytes_sha256(data: bytes) -> str:
    """Calculate SHA-256 digest of a byte payload.

    Parameters
    ----------
    data : bytes
        Payload, typically a serialized export record.

    Returns
    -------
    str
        Digest in format "sha256:<hex>".
    """
    return format_sha256(hashlib.sha256(data).hexdigest())

