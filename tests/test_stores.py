"""Tests for the credential and session stores on SQLite."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.user import User
from services.exceptions import DuplicateIdentity


def make_user(credential_store, email="a@x.com"):
    return credential_store.save(User(email=email, password_hash="$argon2id$fake"))


def make_record(session_store, user, token="tok-1", ttl=timedelta(days=7)):
    now = utcnow()
    return session_store.save(
        RefreshToken(token=token, user_id=user.id, issued_at=now, expires_at=now + ttl)
    )


class TestEntities:
    def test_user_requires_email_and_hash(self):
        with pytest.raises(ValueError):
            User(email="", password_hash="h")
        with pytest.raises(ValueError):
            User(email="a@x.com", password_hash="")

    def test_user_email_is_normalized(self):
        assert User(email="  A@X.Com ", password_hash="h").email == "a@x.com"

    def test_password_is_write_only(self):
        with pytest.raises(AttributeError):
            User(email="a@x.com", password_hash="h").password

    def test_refresh_token_rejects_inverted_window(self):
        now = utcnow()
        with pytest.raises(ValueError):
            RefreshToken(token="t", user_id="u", issued_at=now, expires_at=now)

    def test_liveness(self):
        now = utcnow()
        record = RefreshToken(token="t", user_id="u", issued_at=now, expires_at=now + timedelta(days=7))

        assert record.is_live(now)
        assert not record.is_live(now + timedelta(days=7))
        record.revoked_at = now
        assert record.is_revoked()
        assert not record.is_live(now)


class TestCredentialStore:
    def test_save_and_find(self, credential_store):
        user = make_user(credential_store)

        assert credential_store.exists_by_identity("a@x.com")
        assert credential_store.find_by_identity("A@X.COM").id == user.id

    def test_save_commits_related_rows_together(self, credential_store, session_store):
        now = utcnow()
        user = User(email="a@x.com", password_hash="$argon2id$fake")
        record = RefreshToken(token="tok-1", user_id=user.id, issued_at=now, expires_at=now + timedelta(days=7))

        credential_store.save(user, record)

        assert session_store.find_by_token("tok-1").user_id == user.id

    def test_related_row_failure_rolls_back_the_user(self, credential_store, session_store):
        owner = make_user(credential_store)
        make_record(session_store, owner, token="taken")
        now = utcnow()
        user = User(email="b@x.com", password_hash="$argon2id$fake")
        clash = RefreshToken(token="taken", user_id=user.id, issued_at=now, expires_at=now + timedelta(days=7))

        # not a duplicate email, so the integrity error is not reported as one
        with pytest.raises(IntegrityError):
            credential_store.save(user, clash)
        assert not credential_store.exists_by_identity("b@x.com")

    def test_missing_identity(self, credential_store):
        assert credential_store.find_by_identity("nobody@x.com") is None
        assert not credential_store.exists_by_identity("nobody@x.com")

    def test_unique_constraint_surfaces_as_duplicate_identity(self, credential_store):
        make_user(credential_store)

        with pytest.raises(DuplicateIdentity):
            make_user(credential_store)
        # the session is usable again after the rollback
        assert credential_store.exists_by_identity("a@x.com")


class TestSessionStore:
    def test_find_by_token(self, credential_store, session_store):
        user = make_user(credential_store)
        record = make_record(session_store, user)

        assert session_store.find_by_token("tok-1").id == record.id
        assert session_store.find_by_token("nope") is None
        assert session_store.find_by_token("") is None

    def test_revoke_is_idempotent(self, credential_store, session_store):
        record = make_record(session_store, make_user(credential_store))
        first = utcnow()

        session_store.revoke(record, first)
        session_store.revoke(record, first + timedelta(minutes=5))

        stored = session_store.find_by_token("tok-1")
        assert stored.is_revoked()
        assert stored.revoked_at.replace(tzinfo=None) == first.replace(tzinfo=None)

    def test_revoke_if_live_has_exactly_one_winner(self, credential_store, session_store):
        record = make_record(session_store, make_user(credential_store))

        assert session_store.revoke_if_live(record) is True
        assert session_store.revoke_if_live(record) is False

    def test_rotate_revokes_old_and_inserts_new(self, credential_store, session_store):
        user = make_user(credential_store)
        old = make_record(session_store, user)
        now = utcnow()
        new = RefreshToken(token="tok-2", user_id=user.id, issued_at=now, expires_at=now + timedelta(days=7))

        assert session_store.rotate(old, new, now) is True
        assert session_store.find_by_token("tok-1").is_revoked()
        assert session_store.find_by_token("tok-2").is_live(now)

    def test_rotate_of_revoked_session_inserts_nothing(self, credential_store, session_store):
        user = make_user(credential_store)
        old = make_record(session_store, user)
        session_store.revoke(old)
        now = utcnow()
        new = RefreshToken(token="tok-2", user_id=user.id, issued_at=now, expires_at=now + timedelta(days=7))

        assert session_store.rotate(old, new, now) is False
        assert session_store.find_by_token("tok-2") is None

    def test_revoke_all_for_principal(self, credential_store, session_store):
        alice = make_user(credential_store, "alice@x.com")
        bob = make_user(credential_store, "bob@x.com")
        make_record(session_store, alice, "a1")
        make_record(session_store, alice, "a2")
        already = make_record(session_store, alice, "a3")
        session_store.revoke(already)
        make_record(session_store, bob, "b1")

        assert session_store.revoke_all_for_principal(alice.id) == 2
        assert session_store.list_live_for_principal(alice.id) == []
        assert [r.token for r in session_store.list_live_for_principal(bob.id)] == ["b1"]

    def test_list_live_skips_expired(self, credential_store, session_store):
        user = make_user(credential_store)
        make_record(session_store, user, "live")
        make_record(session_store, user, "short", ttl=timedelta(minutes=1))

        later = utcnow() + timedelta(minutes=5)
        assert [r.token for r in session_store.list_live_for_principal(user.id, later)] == ["live"]
