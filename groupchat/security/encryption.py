# =============================================================================
# File: groupchat/security/encryption.py - Password hashing
# =============================================================================
# Bcrypt for password hashing. Hashes are opaque strings to the chat domain.
# =============================================================================

import logging

import bcrypt

_log = logging.getLogger("groupchat.security.encryption")


def hash_password(password: str) -> str:
    """Hashes a password using bcrypt. Returns the hash as a string."""
    if not password:
        raise ValueError("Password cannot be empty.")
    salt = bcrypt.gensalt()
    hashed_bytes = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed_bytes.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """Validates a plaintext password against its bcrypt hash."""
    if not password or not hashed_password:
        _log.debug("Attempted to verify empty password or hash.")
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
    except (ValueError, TypeError) as bcrypt_err:
        _log.warning(f"Password verification error (e.g., malformed hash or salt): {bcrypt_err}")
        return False
