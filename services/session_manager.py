"""
Session manager: registration, login, refresh rotation and logout.

This is the only place with business rules. It composes:
- CredentialStore (users)
- SessionStore (refresh sessions)
- TokenSigner (access / refresh JWTs)

Refresh tokens are checked twice: the stored row must be live AND the string
must verify as a refresh JWT whose subject owns that row. Rotation goes
through SessionStore.rotate so a token can only ever be exchanged once.

Disabled accounts: by default only new logins are blocked, live sessions keep
refreshing until they expire or are revoked. Set require_active_on_refresh
(REFRESH_REQUIRES_ACTIVE_ACCOUNT) to also reject refresh for them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from models.base_model import utcnow
from models.credential_store import CredentialStore
from models.refresh_token import RefreshToken
from models.session_store import SessionStore
from models.user import User, normalize_email
from services.exceptions import (
    AccountDisabled,
    DuplicateIdentity,
    InvalidCredentials,
    InvalidToken,
    PrincipalNotFound,
    TokenExpired,
    TokenExpiredOrRevoked,
)
from utils.security import (
    ACCESS,
    REFRESH,
    TokenSigner,
    hash_password,
    password_needs_rehash,
    verify_password,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    access_token: str
    refresh_token: str
    user_id: str
    email: str
    expires_in: int
    token_type: str = "bearer"


class SessionManager:
    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionStore,
        signer: TokenSigner,
        require_active_on_refresh: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.credentials = credentials
        self.sessions = sessions
        self.signer = signer
        self.require_active_on_refresh = require_active_on_refresh
        self.clock = clock
        self._dummy_hash: Optional[str] = None

    def _start_session(self, user: User) -> AuthResult:
        access = self.signer.issue_access(user.email)
        refresh = self.signer.issue_refresh(user.email)
        self.sessions.save(self._new_record(user, refresh))
        return self._result(user, access, refresh)

    def _new_record(self, user: User, token: str) -> RefreshToken:
        now = self.clock()
        return RefreshToken(
            token=token,
            user_id=user.id,
            issued_at=now,
            expires_at=now + self.signer.refresh_ttl,
        )

    def _result(self, user: User, access: str, refresh: str) -> AuthResult:
        return AuthResult(
            access_token=access,
            refresh_token=refresh,
            user_id=user.id,
            email=user.email,
            expires_in=int(self.signer.access_ttl.total_seconds()),
        )

    def _burn_time(self, password: str) -> None:
        """Unknown email: do one argon2 verify anyway so both failures cost the same."""
        if self._dummy_hash is None:
            self._dummy_hash = hash_password("not-a-real-password")
        verify_password(password, self._dummy_hash)

    def register(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> AuthResult:
        email = normalize_email(email)
        if not email or not password:
            raise ValueError("email and password are required")
        if self.credentials.exists_by_identity(email):
            raise DuplicateIdentity()

        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            phone=phone,
            is_active=True,
        )
        access = self.signer.issue_access(user.email)
        refresh = self.signer.issue_refresh(user.email)
        # user and first session commit together; a concurrent registration
        # that slipped past the check fails here and leaves nothing behind
        self.credentials.save(user, self._new_record(user, refresh))
        logger.info("Registered user %s", user.id)
        return self._result(user, access, refresh)

    def login(self, email: str, password: str) -> AuthResult:
        email = normalize_email(email)
        user = self.credentials.find_by_identity(email) if email else None
        if user is None:
            self._burn_time(password or "")
            logger.warning("Failed login for unknown identity")
            raise InvalidCredentials()

        if not verify_password(password or "", user.password_hash):
            logger.warning("Failed login for user %s", user.id)
            raise InvalidCredentials()

        if not user.is_active:
            logger.warning("Login refused for disabled user %s", user.id)
            raise AccountDisabled()

        if password_needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            self.credentials.save(user)

        return self._start_session(user)

    def refresh(self, refresh_token: str) -> AuthResult:
        record = self.sessions.find_by_token(refresh_token)
        if record is None:
            raise InvalidToken("Invalid refresh token")

        now = self.clock()
        # the stored row is authoritative: it can be revoked before the JWT expires
        if not record.is_live(now):
            if record.is_revoked():
                logger.warning("Revoked refresh token presented for user %s", record.user_id)
            raise TokenExpiredOrRevoked()

        try:
            email = self.signer.extract_identity(refresh_token, expected_type=REFRESH)
        except TokenExpired:
            raise TokenExpiredOrRevoked()

        user = self.credentials.find_by_identity(email)
        if user is None:
            raise PrincipalNotFound()
        if user.id != record.user_id:
            raise InvalidToken("Invalid refresh token")
        if self.require_active_on_refresh and not user.is_active:
            raise AccountDisabled()

        access = self.signer.issue_access(user.email)
        new_refresh = self.signer.issue_refresh(user.email)
        if not self.sessions.rotate(record, self._new_record(user, new_refresh), now):
            # lost the race against another refresh or a logout
            logger.warning("Concurrent reuse of refresh token for user %s", user.id)
            raise TokenExpiredOrRevoked()

        logger.info("Rotated refresh session %s for user %s", record.id, user.id)
        return self._result(user, access, new_refresh)

    def logout(self, refresh_token: str) -> None:
        record = self.sessions.find_by_token(refresh_token)
        if record is None:
            raise InvalidToken("Invalid refresh token")
        self.sessions.revoke(record, self.clock())
        logger.info("Logged out session %s", record.id)

    def revoke_all_sessions(self, user_id: str) -> int:
        count = self.sessions.revoke_all_for_principal(user_id, self.clock())
        logger.info("Revoked %d sessions for user %s", count, user_id)
        return count

    def authenticate_access(self, access_token: str) -> User:
        """Resolve a bearer access token to its (active) user."""
        email = self.signer.extract_identity(access_token, expected_type=ACCESS)
        user = self.credentials.find_by_identity(email)
        if user is None:
            raise InvalidToken("User not found")
        if not user.is_active:
            raise AccountDisabled()
        return user
