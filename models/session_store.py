"""
Session store: persistence contract for refresh sessions.

Every state change is a conditional UPDATE on revoked_at IS NULL, so the row
itself is the serialization point: of two callers racing on one token exactly
one sees rowcount == 1.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm.attributes import set_committed_value

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken


class SessionStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def save(self, record: RefreshToken) -> RefreshToken:
        self.storage.new(record)
        self.storage.save()
        return record

    def find_by_token(self, token: str) -> Optional[RefreshToken]:
        if not token:
            return None
        session = self.storage.get_session()
        return session.execute(
            select(RefreshToken).where(RefreshToken.token == token)
        ).scalar_one_or_none()

    def _conditional_revoke(self, record: RefreshToken, now: datetime) -> bool:
        session = self.storage.get_session()
        result = session.execute(
            update(RefreshToken)
            .where(RefreshToken.id == record.id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def revoke_if_live(self, record: RefreshToken, now: Optional[datetime] = None) -> bool:
        """Revoke and commit; False if someone else revoked it first"""
        now = now or utcnow()
        won = self._conditional_revoke(record, now)
        self.storage.save()
        if won:
            set_committed_value(record, "revoked_at", now)
        return won

    def revoke(self, record: RefreshToken, now: Optional[datetime] = None) -> None:
        """Idempotent: revoking an already revoked session is a no-op"""
        self.revoke_if_live(record, now)

    def rotate(self, old: RefreshToken, new: RefreshToken, now: Optional[datetime] = None) -> bool:
        """
        Revoke `old` and insert `new` in one transaction.
        Returns False, inserting nothing, when `old` was already revoked.
        """
        now = now or utcnow()
        if not self._conditional_revoke(old, now):
            self.storage.rollback()
            return False
        self.storage.new(new)
        self.storage.save()
        set_committed_value(old, "revoked_at", now)
        return True

    def revoke_all_for_principal(self, user_id: str, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        session = self.storage.get_session()
        result = session.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.storage.save()
        # loaded rows still hold the old revoked_at
        session.expire_all()
        return result.rowcount

    def list_live_for_principal(self, user_id: str, now: Optional[datetime] = None) -> List[RefreshToken]:
        now = now or utcnow()
        session = self.storage.get_session()
        rows = session.execute(
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .order_by(RefreshToken.issued_at.asc())
        ).scalars().all()
        return [r for r in rows if not r.is_expired(now)]
