"""
Password hashing for inventory users.

Authentication and sessions are handled outside this service; storage only
needs to hash passwords on write and verify them on request.
"""
from passlib.context import CryptContext

# Password hashing (bcrypt embeds its own per-hash salt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    if not plain_password or not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)
