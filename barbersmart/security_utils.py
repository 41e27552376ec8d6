"""
Security Utilities
JWT tokens for API access and Fernet encryption for provider credentials at rest
"""

import base64
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken
from jose import JWTError
from jose import jwt as jose_jwt

from .config import CREDENTIALS_ENCRYPTION_KEY, JWT_ALGORITHM, JWT_EXPIRATION_MINUTES, SECRET_KEY

logger = logging.getLogger(__name__)


# ============================================================================
# TOKENS
# ============================================================================


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT token"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=JWT_EXPIRATION_MINUTES))
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """Verify and decode a JWT token, returning None when invalid or expired"""
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


# ============================================================================
# CREDENTIAL ENCRYPTION
# ============================================================================


def _build_cipher() -> Fernet:
    if CREDENTIALS_ENCRYPTION_KEY:
        return Fernet(CREDENTIALS_ENCRYPTION_KEY.encode())
    # Derive a valid Fernet key from SECRET_KEY
    digest = hashlib.sha256(SECRET_KEY.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


cipher_suite = _build_cipher()


def encrypt_credential(value: str) -> str:
    """Encrypt a credential for storage"""
    return cipher_suite.encrypt(value.encode()).decode()


def decrypt_credential(encrypted_credential: Optional[str]) -> Optional[str]:
    """Decrypt a stored credential. Returns None if missing or unreadable"""
    if not encrypted_credential:
        return None
    try:
        return cipher_suite.decrypt(encrypted_credential.encode()).decode()
    except InvalidToken:
        logger.error("❌ Failed to decrypt stored credential (invalid token or key rotated)")
        return None


def mask_secret(value: Optional[str], visible: int = 4) -> Optional[str]:
    """Mask a secret for display, keeping the last characters"""
    if not value:
        return value
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
