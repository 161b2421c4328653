import logging
import secrets

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def is_hashed(stored: str) -> bool:
    """False for legacy rows that still hold the plaintext password"""
    return pwd_context.identify(stored) is not None


def verify_password(plain_password: str, stored: str) -> bool:
    """
    Check a password against the stored credential.

    Legacy plaintext credentials are compared in constant time; callers
    should rehash them after a successful check (see ``is_hashed``).
    """
    if not is_hashed(stored):
        return constant_time_compare(plain_password, stored)
    try:
        return pwd_context.verify(plain_password, stored)
    except ValueError as e:
        logger.error(f"❌ Password verification error: {e}")
        return False


def constant_time_compare(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode(), b.encode())
