"""Encoding helpers for attribute payloads."""

import base64
import binascii
import hashlib

from brightbox_provider.core.errors import SizeLimitError

USER_DATA_SIZE_LIMIT = 16384


def is_base64_encoded(data: str) -> bool:
    """Check whether a string is valid standard base64."""
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def base64_encode(data: str) -> str:
    """Encode a string as base64 unless it is encoded already.

    Args:
        data: Plain or already encoded text

    Returns:
        Base64 text
    """
    if is_base64_encoded(data):
        return data
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def require_base64(data: str) -> str:
    """Validate that a string is base64 encoded.

    Raises:
        ValueError: If it is not
    """
    if not is_base64_encoded(data):
        raise ValueError("must be base64-encoded")
    return data


def hash_string(data: str) -> str:
    """SHA-1 hex digest of a string."""
    return hashlib.sha1(data.encode("utf-8")).hexdigest()


def user_data_hash_sum(user_data: str) -> str:
    """Hash user data as returned by the API.

    The hash is always taken over the decoded payload so it matches the hash
    of the plain text the user configured.
    """
    try:
        decoded = base64.b64decode(user_data, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        decoded = user_data
    return hash_string(decoded)


def check_size(encoded: str, limit: int = USER_DATA_SIZE_LIMIT, field: str = "user_data") -> str:
    """Enforce an encoded size limit.

    Args:
        encoded: Encoded payload
        limit: Maximum size in bytes
        field: Attribute name for the error message

    Returns:
        The payload unchanged

    Raises:
        SizeLimitError: If the payload is larger than the limit
    """
    size = len(encoded.encode("utf-8"))
    if size > limit:
        raise SizeLimitError(size, limit, field)
    return encoded
