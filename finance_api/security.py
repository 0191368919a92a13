"""
security.py - Password Hashing and Bearer Tokens

Provides:
  - bcrypt password hashing / constant-time verification
  - HS256 JWT issuing and verification
"""

import logging

import bcrypt
import jwt as pyjwt

from finance_api.config import BCRYPT_ROUNDS, JWT_ALGORITHM, JWT_EXPIRY_SEC
from finance_common.utils import current_timestamp

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72      # bcrypt ignores everything past this


# ─────────────────────────────────────────────
# PASSWORDS
# ─────────────────────────────────────────────
def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash *password* with a fresh salt; returns the $2b$ string stored in users.password."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")


def verify_password(candidate: str, stored_hash: str) -> bool:
    return bcrypt.checkpw(_password_bytes(candidate), stored_hash.encode("ascii"))


# ─────────────────────────────────────────────
# TOKENS
# ─────────────────────────────────────────────
class TokenError(Exception):
    """Any reason a bearer token cannot be accepted."""


class TokenService:

    def __init__(self, secret: str, expiry_sec: int = JWT_EXPIRY_SEC,
                 algorithm: str = JWT_ALGORITHM):
        self._secret = secret
        self.expiry_sec = expiry_sec
        self.algorithm = algorithm

    def issue(self, user_id: int, issued_at: int = None) -> str:
        now = current_timestamp() if issued_at is None else issued_at
        payload = {
            "userId": user_id,
            "iat": now,
            "exp": now + self.expiry_sec,
        }
        return pyjwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict:
        try:
            return pyjwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp"]},
            )
        except pyjwt.ExpiredSignatureError:
            logger.debug("Token expired")
            raise TokenError("token expired") from None
        except pyjwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise TokenError("token invalid") from None
