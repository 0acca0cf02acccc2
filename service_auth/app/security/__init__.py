"""
Credential handling package.

- PasswordHasher: bcrypt hashing executed in a worker thread.
- TokenIssuer: HS256 access tokens carrying the user id and email, plus
  the decode check used by token consumers.
"""

from .credentials import PasswordHasher, TokenIssuer

__all__ = ["PasswordHasher", "TokenIssuer"]
