# visa_tracker/core/security.py
import hmac
import os
from typing import Optional

from passlib.context import CryptContext

# rounds can be tuned through ENV
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
_pwd = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return _pwd.hash(password)


def is_password_hash(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        return _pwd.identify(value) is not None
    except (TypeError, ValueError):
        return False


def verify_password(plain_password: str, stored: Optional[str]) -> bool:
    """
    The stored admin password is either a bcrypt hash (see
    scripts/hash_password.py) or the plain value kept in settings.json.
    """
    if not stored or plain_password is None:
        return False
    if is_password_hash(stored):
        try:
            return _pwd.verify(plain_password, stored)
        except (TypeError, ValueError):
            return False
    return hmac.compare_digest(str(plain_password).encode("utf-8"), str(stored).encode("utf-8"))
