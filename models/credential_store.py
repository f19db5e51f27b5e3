"""
Credential store: persistence contract for users.

Pure CRUD. The unique index on users.email is the only thing that decides a
registration race; a violation comes back as DuplicateIdentity.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.user import User, normalize_email
from services.exceptions import DuplicateIdentity


class CredentialStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def exists_by_identity(self, email: str) -> bool:
        return self.find_by_identity(email) is not None

    def find_by_identity(self, email: str) -> Optional[User]:
        session = self.storage.get_session()
        return session.execute(
            select(User).where(User.email == normalize_email(email))
        ).scalar_one_or_none()

    def save(self, user: User, *related) -> User:
        """Commit the user together with any rows that must not outlive a failed insert."""
        self.storage.new(user)
        for obj in related:
            self.storage.new(obj)
        try:
            self.storage.save()
        except IntegrityError as exc:
            # save() already rolled back, so this sees only committed rows
            if self.exists_by_identity(user.email):
                raise DuplicateIdentity() from exc
            raise
        return user
