"""
security helpers:
- Argon2 password hashing via argon2-cffi
- TokenSigner: JWT creation/verification via PyJWT
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from services.exceptions import InvalidToken, SignerConfigurationError, TokenExpired

ph = PasswordHasher(type=Type.ID)

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2 (constant time comparison)
    """
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHash):
        # corrupt or foreign hash format
        return False


def password_needs_rehash(password_hash: str) -> bool:
    try:
        return ph.check_needs_rehash(password_hash)
    except InvalidHash:
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SigningKey:
    """
    Immutable key material handed to TokenSigner at startup.

    For HMAC algorithms `secret` both signs and verifies. For asymmetric ones
    `secret` is the private key and `verification_secret` the public key.
    """

    secret: str
    algorithm: str = "HS256"
    verification_secret: Optional[str] = None
    kid: Optional[str] = None

    def __post_init__(self):
        if not self.secret:
            raise SignerConfigurationError("JWT signing secret is not configured")
        if not self.algorithm:
            raise SignerConfigurationError("JWT algorithm is not configured")

    @property
    def verify_key(self) -> str:
        return self.verification_secret or self.secret


class TokenSigner:
    """Mints and verifies access/refresh JWTs carrying the user's email as `sub`."""

    def __init__(
        self,
        key: SigningKey,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        issuer: str = "auth-session-service",
        clock: Callable[[], datetime] = _now,
    ):
        self._key = key
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.issuer = issuer
        self.clock = clock

    @property
    def key(self) -> SigningKey:
        return self._key

    def rotate_key(self, key: SigningKey) -> None:
        """Swap key material; every token signed with the old key stops verifying."""
        self._key = key

    def _issue(self, identity: str, token_type: str, ttl: timedelta) -> str:
        if not identity:
            raise ValueError("identity is required")
        now = self.clock()
        payload = {
            "iss": self.issuer,
            "sub": str(identity),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "type": token_type,
            "jti": generate_jti(),
        }
        headers = {"kid": self._key.kid} if self._key.kid else None
        return jwt.encode(payload, self._key.secret, algorithm=self._key.algorithm, headers=headers)

    def issue_access(self, identity: str) -> str:
        return self._issue(identity, ACCESS, self.access_ttl)

    def issue_refresh(self, identity: str) -> str:
        return self._issue(identity, REFRESH, self.refresh_ttl)

    def decode(self, token: str, expected_type: Optional[str] = None) -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises TokenExpired on an expired signature and
        InvalidToken for anything else (malformed, bad signature, wrong issuer/type).
        """
        if not token:
            raise InvalidToken()
        try:
            decoded = jwt.decode(
                token,
                self._key.verify_key,
                algorithms=[self._key.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.InvalidTokenError:
            raise InvalidToken()

        if expected_type and decoded.get("type") != expected_type:
            raise InvalidToken("Wrong token type")
        return decoded

    def extract_identity(self, token: str, expected_type: Optional[str] = None) -> str:
        return self.decode(token, expected_type=expected_type)["sub"]
