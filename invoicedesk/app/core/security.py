"""Password hashing helpers.

Stored credentials are salted bcrypt hashes; verification goes through passlib,
which compares digests in constant time.
"""

from typing import Optional

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        # Keep the timing of unknown users close to that of wrong passwords
        pwd_context.dummy_verify()
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format, e.g. a legacy plaintext value
        return False
