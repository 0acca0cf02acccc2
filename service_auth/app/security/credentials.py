"""
Password hashing and token issuing for Auth service.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any

import bcrypt
import jwt
from starlette.concurrency import run_in_threadpool

from shared.logging import get_logger
from shared.errors import AuthenticationError


class PasswordHasher:
    """bcrypt hashing, run off the event loop."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def _hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    @staticmethod
    def _verify(password: str, hashed_password: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            # malformed stored hash
            return False

    async def hash(self, password: str) -> str:
        return await run_in_threadpool(self._hash, password)

    async def verify(self, password: str, hashed_password: str) -> bool:
        return await run_in_threadpool(self._verify, password, hashed_password)


class TokenIssuer:
    """Signs short-lived access tokens.

    There is no refresh token and no revocation list; a token stays valid
    until ``exp``.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expires_seconds: int = 3600):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_seconds = expires_seconds
        self.logger = get_logger("auth.tokens")

    def issue(self, user_id: str, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "email": email,
            "iat": now,
            "exp": now + timedelta(seconds=self.expires_seconds),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """Verify signature and expiry, returning the claims.

        No auth route calls this; it is the check a token consumer (a service
        that accepts these tokens as bearer credentials) runs with the same
        secret and algorithm.
        """
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError as e:
            self.logger.warning("Token verification failed", error=str(e))
            raise AuthenticationError("Invalid token", details={"token_error": str(e)})
