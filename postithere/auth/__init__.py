"""Authentication / authorization helpers.

Auth is intentionally lightweight:

- Users collection (email + password hash + owned forms)
- Stateless JWT access tokens, valid for a fixed window (10 hours by default)

The API only accepts `Authorization: Bearer <token>`; the token itself is
returned as plain text by `POST /users/login`.
"""

from .crud import UserDirectory
from .deps import get_current_user, require_registration_open
from .security import PasswordHasher, TokenService

__all__ = [
    "PasswordHasher",
    "TokenService",
    "UserDirectory",
    "get_current_user",
    "require_registration_open",
]
