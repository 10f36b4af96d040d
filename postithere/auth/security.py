from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from passlib.context import CryptContext


_JWT_ALG = "HS512"
DEFAULT_TOKEN_VALIDITY = timedelta(hours=10)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PasswordHasher:
    """Salted one-way password hashing (pbkdf2_sha256 via passlib).

    The salt and the round count are embedded in the hash string, so verifying
    needs nothing besides the stored hash.
    """

    def __init__(self, rounds: int = 29000):
        self._ctx = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=max(1, int(rounds)),
        )

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("password_blank")
        return self._ctx.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return self._ctx.verify(password, password_hash)
        except (ValueError, TypeError):
            # Malformed or unknown hash format.
            return False

    def dummy_verify(self) -> None:
        """Spend the same time as a real verify (used when the account is unknown)."""
        self._ctx.dummy_verify()


class TokenService:
    """Issues and verifies stateless HMAC-signed bearer tokens.

    Tokens carry sub (user id), iss, aud, iat and exp. Nothing is stored
    server-side, so a token stays valid until it expires.
    """

    def __init__(
        self,
        *,
        secret: str,
        issuer: str,
        audience: str,
        validity: timedelta = DEFAULT_TOKEN_VALIDITY,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.validity = validity
        self._clock = clock

    def issue(self, user_id: str) -> str:
        now = self._clock()
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int((now + self.validity).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=_JWT_ALG)

    def verify(self, token: str) -> Optional[str]:
        """Return the user id the token was issued for, or None if it is not acceptable.

        Never raises: bad signature, wrong issuer/audience, expiry and garbage
        input all come back as None. Expiry is judged against this service's
        clock, the same one `issue` uses.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_JWT_ALG],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "iss", "aud", "sub"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError:
            return None

        exp = payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None
        now = int(self._clock().timestamp())
        if now >= exp:
            return None
        iat = payload.get("iat")
        if isinstance(iat, (int, float)) and not isinstance(iat, bool) and iat > now:
            return None

        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            return None
        return sub
