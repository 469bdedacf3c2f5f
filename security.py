import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from config import Settings
from errors import AuthError, InvalidTokenError
from schemas import Identity

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        if not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            # Unparseable stored hash; treat it as a mismatch.
            logger.warning("Stored password hash could not be parsed")
            return False


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens.

    Tokens are HS256 JWTs by default. Expiry is the only invalidation
    mechanism: rotating the secret invalidates every outstanding token.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=1)):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(seconds=settings.jwt_expires_in),
        )

    def issue(self, claims: Dict[str, Any], ttl: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            **claims,
            "iat": int(now.timestamp()),
            "exp": int((now + (ttl if ttl is not None else self.ttl)).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.InvalidTokenError:
            raise InvalidTokenError()

    def identify(self, token: str) -> Identity:
        claims = self.verify(token)
        try:
            return Identity(userId=claims.get("userId"), email=claims.get("email"))
        except PydanticValidationError:
            raise InvalidTokenError()


def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """Auth gateway for every protected route."""
    if credentials is None:
        raise AuthError("No token provided")
    tokens: TokenService = request.app.state.tokens
    return tokens.identify(credentials.credentials)
