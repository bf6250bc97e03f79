"""API key generation, parsing and hashing utilities.

Keys have the shape ``pk_<env>_<key_id>_<secret>``. The ``key_id`` part is
stored in clear and indexed for lookup; the secret is only kept as a bcrypt
hash of the whole key.
"""

import secrets
from typing import Literal, NamedTuple

import bcrypt

KeyEnvironment = Literal["live", "test"]

KEY_PREFIX = "pk"
KEY_ENVIRONMENTS: tuple[str, ...] = ("live", "test")


class ParsedApiKey(NamedTuple):
    """Components of a well-formed API key."""

    environment: str
    key_id: str
    secret: str


def generate_api_key(environment: KeyEnvironment) -> tuple[str, str]:
    """
    Generate a new API key for a project environment.

    Args:
        environment: "live" or "test"

    Returns:
        Tuple of (plaintext key, key_id)
    """
    if environment not in KEY_ENVIRONMENTS:
        raise ValueError(f"Unknown key environment: {environment}")
    key_id = secrets.token_hex(8)
    secret = secrets.token_hex(16)
    return f"{KEY_PREFIX}_{environment}_{key_id}_{secret}", key_id


def parse_api_key(api_key: str) -> ParsedApiKey | None:
    """
    Split an API key into its components.

    Args:
        api_key: Plaintext key from the x-api-key header

    Returns:
        ParsedApiKey, or None if the key is malformed
    """
    parts = api_key.strip().split("_")
    if len(parts) != 4:
        return None
    prefix, environment, key_id, secret = parts
    if prefix != KEY_PREFIX or environment not in KEY_ENVIRONMENTS:
        return None
    if not key_id or not secret:
        return None
    return ParsedApiKey(environment, key_id, secret)


def hash_api_key(api_key: str) -> str:
    """
    Hash an API key using bcrypt.

    Args:
        api_key: Plain text API key to hash

    Returns:
        Bcrypt hash of the API key
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(api_key.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_api_key(api_key: str, key_hash: str) -> bool:
    """
    Verify an API key against its hash.

    Args:
        api_key: Plain text API key to verify
        key_hash: Bcrypt hash to verify against

    Returns:
        True if the API key matches the hash, False otherwise
    """
    if not key_hash:
        return False
    try:
        return bcrypt.checkpw(api_key.encode("utf-8"), key_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
