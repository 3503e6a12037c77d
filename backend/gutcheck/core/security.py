# gutcheck/core/security.py
"""
Security module for authentication and credential storage.
Handles JWT access tokens (the authentication context handed to every request)
and the credential vault that encrypts bring-your-own API keys at rest.
"""
import os
import json
import base64
import binascii
import logging
import secrets
import datetime as dt
from typing import Optional

import jwt  # PyJWT
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from dotenv import load_dotenv
from pathlib import Path

from gutcheck.core.errors import ConfigurationError, IntegrityError

# Load environment variables from project root
ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

logger = logging.getLogger("uvicorn.error")

# JWT configuration
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")  # Secret key for JWT signing (use strong secret in production)
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

# AES-256-GCM parameters
NONCE_LENGTH = 12
TAG_LENGTH = 16


def create_access_token(user_id: str, email: str) -> str:
    """
    Create a JWT access token identifying a user.

    The email is carried for logging/display only; the subject (user id) is
    what the API layer resolves back to a User.

    Token payload includes:
        - sub: Subject (user ID)
        - email: Normalized email
        - iat: Issued at timestamp
        - exp: Expiration timestamp
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "iat": now,
        "exp": now + dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])


# ========== Credential vault ==========

def generate_encryption_key() -> str:
    """Return a fresh 256-bit master key as 64 hex characters (suitable for ENCRYPTION_KEY)."""
    return secrets.token_hex(32)


def _key_bytes(master_key: Optional[str]) -> bytes:
    """
    Normalize the master key to exactly 32 bytes.

    A 64-character hex string is decoded as raw key material; anything else is
    taken as UTF-8, right-padded with "0" and truncated to 32 bytes.
    """
    if not master_key:
        raise ConfigurationError("Server encryption not configured (ENCRYPTION_KEY missing)")
    if len(master_key) == 64:
        try:
            return bytes.fromhex(master_key)
        except ValueError:
            pass
    return master_key.ljust(32, "0").encode("utf-8")[:32]


class CredentialVault:
    """
    Stateless AEAD wrapper around a single process-wide master key.

    Blob format: base64(JSON{"encrypted": hex, "iv": hex, "tag": hex}).
    A fresh random nonce is drawn for every encrypt call.
    """

    def __init__(self, master_key: Optional[str]):
        self.master_key = master_key

    def is_configured(self) -> bool:
        return bool(self.master_key)

    def encrypt(self, plaintext: str) -> str:
        aead = AESGCM(_key_bytes(self.master_key))
        nonce = os.urandom(NONCE_LENGTH)
        sealed = aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        payload = {
            "encrypted": ciphertext.hex(),
            "iv": nonce.hex(),
            "tag": tag.hex(),
        }
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")

    def decrypt(self, blob: str) -> str:
        aead = AESGCM(_key_bytes(self.master_key))
        try:
            data = json.loads(base64.b64decode(blob, validate=True))
            ciphertext = bytes.fromhex(data["encrypted"])
            nonce = bytes.fromhex(data["iv"])
            tag = bytes.fromhex(data["tag"])
        except (binascii.Error, ValueError, KeyError, TypeError) as e:
            raise IntegrityError(f"Malformed credential blob: {e.__class__.__name__}")
        if len(tag) != TAG_LENGTH or not 8 <= len(nonce) <= 128:
            raise IntegrityError("Malformed credential blob: bad nonce/tag length")
        try:
            plain = aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            raise IntegrityError("Credential blob failed authentication")
        return plain.decode("utf-8")


def encrypt_secret(plaintext: str, master_key: Optional[str]) -> str:
    return CredentialVault(master_key).encrypt(plaintext)


def decrypt_secret(blob: str, master_key: Optional[str]) -> str:
    return CredentialVault(master_key).decrypt(blob)
