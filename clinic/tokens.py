"""
Bearer tokens.

Tokens are HS256 JWTs carrying ``{"admin": true, "exp": ..., "name": ...}``.
There is no server-side session: a token is valid for as long as its
signature checks out and its ``exp`` has not passed.  Both classes take the
current time from an injectable clock so that expiry can be exercised
without waiting on the wall clock.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import jwt
from django.utils import timezone

from .exceptions import AuthError, TokenError

ALGORITHM = "HS256"

Clock = Callable[[], datetime]


class TokenIssuer:
    """Mint signed admin tokens that expire ``lifetime`` after issuance."""

    def __init__(self, signing_key: str, claim_name: str, lifetime: timedelta, clock: Clock = timezone.now):
        self.signing_key = signing_key
        self.claim_name = claim_name
        self.lifetime = lifetime
        self.clock = clock

    def issue(self, now: Optional[datetime] = None) -> str:
        now = now or self.clock()
        claims = {
            "admin": True,
            "exp": int((now + self.lifetime).timestamp()),
            "name": self.claim_name,
        }
        try:
            return jwt.encode(claims, self.signing_key, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise TokenError(f"failed to sign token: {exc}") from exc


class TokenAuthenticator:
    """Verify ``Authorization: Bearer <token>`` headers.

    Every failure raises :class:`AuthError`; callers answer all of them the
    same way, so the message is for logs only.
    """
    scheme = "bearer"

    def __init__(self, signing_key: str, clock: Clock = timezone.now):
        self.signing_key = signing_key
        self.clock = clock

    def authenticate(self, authorization: Optional[str]) -> Dict[str, Any]:
        if not authorization:
            raise AuthError("required authorization token not found")

        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0].lower() != self.scheme or not parts[1]:
            raise AuthError("authorization header format must be Bearer {token}")

        try:
            claims = jwt.decode(
                parts[1],
                self.signing_key,
                algorithms=[ALGORITHM],
                # exp is checked below against our own clock
                options={"require": ["exp"], "verify_exp": False},
            )
        except jwt.PyJWTError as exc:
            raise AuthError(f"error parsing token: {exc}") from exc

        exp = claims["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise AuthError("exp claim is not a number")
        if self.clock().timestamp() > exp:
            raise AuthError("token is expired")
        return claims
