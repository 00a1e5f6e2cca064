"""
Credential derivation and secret generation.

Passwords and client secrets are derived with argon2 (``passlib.hash.argon2``) before they reach the store. The hash
string embeds its own salt and parameters, so verification needs nothing but the stored value.
"""

import secrets

from passlib.hash import argon2

CLIENT_ID_LENGTH = 16
CLIENT_SECRET_LENGTH = 32


def generate_token(length: int) -> str:
    """Return a URL-safe random string of exactly ``length`` characters."""
    # token_urlsafe encodes n bytes as ceil(4n/3) base64 characters.
    return secrets.token_urlsafe(length)[:length]


def generate_client_id() -> str:
    return generate_token(CLIENT_ID_LENGTH)


def generate_client_secret() -> str:
    return generate_token(CLIENT_SECRET_LENGTH)


def hash_secret(secret: str) -> str:
    return argon2.hash(secret)


def verify_secret(secret: str, hashed: str) -> bool:
    try:
        return argon2.verify(secret, hashed)
    except ValueError:
        # Malformed or foreign hash strings never verify.
        return False
