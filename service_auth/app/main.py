"""
Auth service for Storefront.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from shared.base_service import BaseService
from shared.errors import AuthenticationError, DuplicateResourceError, UnknownUserError
from shared.storage import Storage, timestamp
from .models import Credentials, LoginResponse, RegisterResponse
from .security import PasswordHasher, TokenIssuer

USERS = "users"


class AuthService(BaseService):
    """Auth service implementation."""

    uses_storage = True

    def __init__(self, storage: Optional[Storage] = None):
        super().__init__("auth", 5001, storage=storage)
        self.hasher = PasswordHasher(rounds=self.config.bcrypt_rounds)
        self.tokens = TokenIssuer(
            self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm,
            expires_seconds=self.config.jwt_expires_seconds
        )
        # email -> [lock, holders and waiters]; uniqueness check and insert for one email must not interleave
        self._registration_locks: Dict[str, List] = {}

        self._setup_auth_routes()

    @property
    def users(self):
        return self.storage.collection(USERS)

    @asynccontextmanager
    async def _registration_lock(self, email: str):
        """Serialize registrations of one email; the lock is dropped once unused."""
        entry = self._registration_locks.setdefault(email, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._registration_locks[email]

    def _setup_auth_routes(self):
        """Set up auth-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "auth",
                "message": "Storefront - Auth Service",
                "version": "1.0.0"
            }

        @self.app.post("/register", status_code=201, response_model=RegisterResponse)
        async def register(credentials: Credentials):
            """Create an account with a bcrypt-hashed password."""
            hashed_password = await self.hasher.hash(credentials.password)

            async with self._registration_lock(credentials.email):
                if await self.users.find_one(email=credentials.email):
                    raise DuplicateResourceError("User already exists", details={"email": credentials.email})

                user = await self.users.insert({
                    "email": credentials.email,
                    "password": hashed_password,
                    "created_at": timestamp()
                })

            self.logger.info("User registered", user_id=user["id"])
            self.metrics.record_business_event("user_registered")
            return RegisterResponse(message="User registered successfully", user_id=user["id"])

        @self.app.post("/login", response_model=LoginResponse)
        async def login(credentials: Credentials):
            """Exchange email and password for a signed access token."""
            user = await self.users.find_one(email=credentials.email)
            if user is None:
                raise UnknownUserError(details={"email": credentials.email})

            if not await self.hasher.verify(credentials.password, user["password"]):
                self.logger.warning("Login rejected", user_id=user["id"])
                raise AuthenticationError("Invalid credentials")

            token = self.tokens.issue(user["id"], user["email"])
            self.metrics.record_business_event("user_logged_in")
            return LoginResponse(token=token, email=user["email"])


def create_app(storage: Optional[Storage] = None):
    """Create FastAPI application."""
    service = AuthService(storage=storage)
    return service.app


if __name__ == "__main__":
    service = AuthService()
    service.run()
