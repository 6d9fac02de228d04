"""Password hashing utilities.

Learn: Uses argon2id, memory-hard, so guessing passwords against a stolen
hash table costs RAM as well as CPU. The encoded hash ("$argon2id$v=19$m=...")
carries its own salt and cost parameters, so verify needs nothing else.

Legacy bcrypt hashes ($2b$...) are still verified and auto-upgraded
to argon2id on successful sign-in.
"""

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password with argon2id and a fresh random salt."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash.

    Supports both argon2 ($argon2...) and legacy bcrypt ($2...) formats.
    Returns False for a mismatch or an unreadable hash; never raises.
    """
    if _is_legacy_hash(password_hash):
        return _verify_legacy(password, password_hash)
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_upgrade(password_hash: str) -> bool:
    """Check if a hash should be recomputed with the current parameters."""
    if _is_legacy_hash(password_hash):
        return True
    try:
        return _hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return False


def _is_legacy_hash(password_hash: str) -> bool:
    return password_hash.startswith("$2")


def _verify_legacy(password: str, password_hash: str) -> bool:
    try:
        # bcrypt only looks at the first 72 bytes
        pw_bytes = password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
