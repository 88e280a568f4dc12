"""Password hashing and signed session tokens.

Passwords are stored as bcrypt hashes; sessions are HS256 JWTs carrying the
principal (``sub``, ``email``, ``role``) with a fixed lifetime and an issuer claim.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from pydantic import ValidationError as SchemaError

from app.config import Settings
from app.schemas.user import Principal

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


class CredentialService:
    """Hashes/verifies passwords and issues/verifies bearer tokens."""

    def __init__(self, settings: Settings):
        self.secret = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.lifetime = timedelta(days=settings.JWT_EXPIRE_DAYS)
        self.rounds = settings.BCRYPT_ROUNDS

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify_password(self, password: str, password_hash: str) -> bool:
        secret = password.encode("utf-8")
        # bcrypt rejects inputs over 72 bytes; no stored hash can match one.
        if len(secret) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(secret, password_hash.encode("ascii"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False

    def issue_token(self, principal: Principal, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": principal.user_id,
            "email": principal.email,
            "role": principal.role.value,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
            "iss": self.issuer,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Principal]:
        """Return the principal for a valid token, None for anything else."""
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iss", "sub"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Token rejected: %s", exc)
            return None
        try:
            return Principal(user_id=claims["sub"], email=claims.get("email", ""), role=claims.get("role"))
        except SchemaError:
            logger.debug("Token carries malformed principal claims")
            return None
