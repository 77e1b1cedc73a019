"""Resolve who is calling and which role they hold.

Sign-in, sign-up and e-mail verification live with the external identity
provider. This side only verifies the provider's HS256 tokens and looks up the
caller's profile to learn the role.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import jwt
from sqlalchemy.ext.asyncio import async_sessionmaker

from food_share.errors import AuthenticationError, NotFoundError, upstream_guard
from food_share.models import User
from food_share.utils.time import utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    uid: str
    role: str
    email_verified: bool = False
    display_name: Optional[str] = None


class IdentityProvider:
    def __init__(self, session_pool: async_sessionmaker, secret: str, issuer: str | None = None):
        if not secret:
            raise ValueError("AUTH_SECRET is not configured")
        self.session_pool = session_pool
        self.secret = secret
        self.issuer = issuer

    def authenticate(self, token: str) -> str:
        """Verify a bearer token and return its subject (the user id)."""
        options = {"require": ["sub", "exp"]}
        try:
            if self.issuer:
                claims = jwt.decode(token, self.secret, algorithms=[ALGORITHM], issuer=self.issuer, options=options)
            else:
                claims = jwt.decode(token, self.secret, algorithms=[ALGORITHM], options=options)
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Session expired, please sign in again.") from exc
        except jwt.InvalidTokenError as exc:
            logger.warning("token_rejected: %s", exc)
            raise AuthenticationError("Invalid authentication token.") from exc
        return str(claims["sub"])

    async def resolve(self, uid: str) -> Identity:
        async with upstream_guard("identity store"):
            async with self.session_pool() as session:
                user = await session.get(User, uid)
        if user is None:
            raise NotFoundError(f"No profile registered for user {uid}.")
        return Identity(
            uid=user.id,
            role=user.role,
            email_verified=user.email_verified,
            display_name=user.display_name,
        )

    def issue_token(self, uid: str, expires_in: timedelta = timedelta(hours=24), **claims) -> str:
        """Mint a token the way the provider does; used by tooling and tests."""
        payload = {"sub": uid, "iat": utcnow(), "exp": utcnow() + expires_in, **claims}
        if self.issuer:
            payload["iss"] = self.issuer
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)
