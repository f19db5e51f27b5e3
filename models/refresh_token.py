"""
RefreshToken model: one row per refresh session (one per device/login).

Fields:
- token (unique) - the signed refresh token string handed to the client
- user_id (String(36)) - FK to users.id, set to NULL if the user is deleted
- issued_at, expires_at
- revoked_at - set once, never cleared

A session is live while revoked_at is NULL and now < expires_at.
"""
from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import Base, as_utc, uuid_str, utcnow


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=uuid_str, nullable=False)
    token = Column(String(2048), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    def __init__(self, token, user_id, issued_at, expires_at, **kwargs):
        if not token:
            raise ValueError("token is required")
        if not user_id:
            raise ValueError("user_id is required")
        if expires_at <= issued_at:
            raise ValueError("expires_at must be after issued_at")
        super().__init__(token=token, user_id=user_id, issued_at=issued_at, expires_at=expires_at, **kwargs)
        if self.id is None:
            self.id = uuid_str()

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return as_utc(now) >= as_utc(self.expires_at)

    def is_live(self, now: datetime) -> bool:
        return not self.is_revoked() and not self.is_expired(now)

    def __repr__(self):
        return f"<RefreshToken id={self.id} user={self.user_id}>"
