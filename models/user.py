"""
User model: the principal that authenticates with email/password.

The password column only ever holds an argon2 hash.
"""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from models.base_model import Base, uuid_str, utcnow


def normalize_email(email: str) -> str:
    return email.strip().lower() if isinstance(email, str) else email


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=uuid_str, nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        passive_deletes=True,
    )

    def __init__(self, email, password_hash, full_name=None, phone=None, is_active=True, **kwargs):
        if not email:
            raise ValueError("email is required")
        if not password_hash:
            raise ValueError("password_hash is required")
        super().__init__(
            email=normalize_email(email),
            password_hash=password_hash,
            full_name=full_name,
            phone=phone,
            is_active=is_active,
            **kwargs,
        )
        if self.id is None:
            self.id = uuid_str()

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User {self.email}>"
