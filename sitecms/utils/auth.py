"""
Admin password checks for CMS login.
The admin password is stored only as a bcrypt hash in ADMIN_PASSWORD_HASH.
"""
import bcrypt
from sitecms.config import settings


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """True when `password` matches `hashed_password`; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def verify_admin_password(password: str) -> bool:
    """
    Check a login attempt against the configured admin hash.

    Raises:
        ValueError: If ADMIN_PASSWORD_HASH is not configured
    """
    if not settings.ADMIN_PASSWORD_HASH:
        raise ValueError("ADMIN_PASSWORD_HASH not configured")
    return verify_password(password, settings.ADMIN_PASSWORD_HASH)
