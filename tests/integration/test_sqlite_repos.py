"""
SQLite repository integration tests.

Exercise the atomic store operations against a real migrated database.
"""

import sqlite3
import threading
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from staffauth.adapters.sqlite.repos import (
    SQLiteInviteRepo,
    SQLiteSessionRepo,
    SQLiteSettingsRepo,
    SQLiteUserRepo,
)
from staffauth.domain.entities import SETTING_SITE_TITLE, Invite, Session, User
from staffauth.domain.errors import DuplicateEmailError, OwnerExistsError

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


def _user(email: str, roles: list[str] | None = None, password_hash: str = "hash-1") -> User:
    return User(
        email=email,
        display_name=email.split("@")[0],
        password_hash=password_hash,
        roles=roles or ["contributor"],  # type: ignore[arg-type]
        created_at=NOW,
        updated_at=NOW,
    )


def _session(user: User, token_hash: str) -> Session:
    return Session(
        id=str(uuid4()),
        user_id=user.id,
        token_hash=token_hash,
        expires_at=NOW + timedelta(days=1),
        created_at=NOW,
    )


def _invite(
    token_hash: str, email: str = "new@example.com", expires_at: datetime | None = None
) -> Invite:
    return Invite(
        token_hash=token_hash,
        email=email,
        role="editor",
        expires_at=expires_at or NOW + timedelta(days=7),
        created_at=NOW,
    )


@pytest.fixture
def users(db_path: str) -> SQLiteUserRepo:
    return SQLiteUserRepo(db_path)


@pytest.fixture
def invites(db_path: str) -> SQLiteInviteRepo:
    return SQLiteInviteRepo(db_path)


@pytest.fixture
def sessions(db_path: str) -> SQLiteSessionRepo:
    return SQLiteSessionRepo(db_path)


@pytest.fixture
def settings(db_path: str) -> SQLiteSettingsRepo:
    return SQLiteSettingsRepo(db_path)


class TestUserRepo:
    def test_round_trip_preserves_fields(self, users: SQLiteUserRepo) -> None:
        user = users.save(_user("a@example.com", ["admin", "editor"]))
        loaded = users.get_by_id(user.id)
        assert loaded is not None
        assert loaded.email == "a@example.com"
        assert sorted(loaded.roles) == ["admin", "editor"]
        assert loaded.created_at == NOW

    def test_email_lookup_is_case_insensitive(self, users: SQLiteUserRepo) -> None:
        users.save(_user("a@example.com"))
        assert users.get_by_email("A@Example.COM") is not None

    def test_duplicate_email_raises(self, users: SQLiteUserRepo) -> None:
        users.save(_user("a@example.com"))
        with pytest.raises(DuplicateEmailError):
            users.save(_user("A@example.com"))


class TestCreateOwner:
    def test_creates_owner_and_settings(
        self, users: SQLiteUserRepo, settings: SQLiteSettingsRepo
    ) -> None:
        owner = users.create_owner(_user("owner@example.com", ["owner"]), {SETTING_SITE_TITLE: "Blog"})
        loaded = users.get_owner()
        assert loaded is not None
        assert loaded.id == owner.id
        assert settings.get(SETTING_SITE_TITLE) == "Blog"

    def test_second_owner_is_rejected(
        self, users: SQLiteUserRepo, settings: SQLiteSettingsRepo
    ) -> None:
        users.create_owner(_user("owner@example.com", ["owner"]), {SETTING_SITE_TITLE: "Blog"})
        with pytest.raises(OwnerExistsError):
            users.create_owner(_user("other@example.com", ["owner"]), {SETTING_SITE_TITLE: "Other"})

        assert users.get_by_email("other@example.com") is None
        assert settings.get(SETTING_SITE_TITLE) == "Blog"

    def test_owner_role_is_unique_even_via_save(self, users: SQLiteUserRepo) -> None:
        users.create_owner(_user("owner@example.com", ["owner"]), {})
        with pytest.raises(OwnerExistsError):
            users.save(_user("sneaky@example.com", ["owner"]))
        assert users.get_by_email("sneaky@example.com") is None

    def test_duplicate_email_rolls_back_settings(
        self, users: SQLiteUserRepo, settings: SQLiteSettingsRepo
    ) -> None:
        users.save(_user("taken@example.com"))
        with pytest.raises(DuplicateEmailError):
            users.create_owner(_user("taken@example.com", ["owner"]), {SETTING_SITE_TITLE: "Blog"})
        assert users.get_owner() is None
        assert settings.get(SETTING_SITE_TITLE) is None

    def test_concurrent_setup_has_one_winner(self, users: SQLiteUserRepo) -> None:
        outcomes: list[str] = []
        lock = threading.Lock()

        def attempt(i: int) -> None:
            try:
                users.create_owner(_user(f"owner{i}@example.com", ["owner"]), {})
                outcome = "created"
            except OwnerExistsError:
                outcome = "exists"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("created") == 1
        assert outcomes.count("exists") == 4


class TestChangePassword:
    def test_swap_reactivates_and_revokes_sessions(
        self, users: SQLiteUserRepo, sessions: SQLiteSessionRepo
    ) -> None:
        user = users.save(_user("a@example.com"))
        assert sessions.save(_session(user, "t1"))
        users.save(user.model_copy(update={"status": "locked"}))

        updated = users.change_password(user.id, "hash-1", "hash-2", NOW)

        assert updated is not None
        assert updated.password_hash == "hash-2"
        assert updated.status == "active"
        assert sessions.list_all() == []

    def test_stale_expected_hash_loses(
        self, users: SQLiteUserRepo, sessions: SQLiteSessionRepo
    ) -> None:
        user = users.save(_user("a@example.com"))
        assert users.change_password(user.id, "hash-1", "hash-2", NOW) is not None
        assert users.change_password(user.id, "hash-1", "hash-3", NOW) is None

        loaded = users.get_by_id(user.id)
        assert loaded is not None
        assert loaded.password_hash == "hash-2"

    def test_inactive_account_is_not_swapped(
        self, users: SQLiteUserRepo, sessions: SQLiteSessionRepo
    ) -> None:
        user = users.save(_user("a@example.com"))
        assert sessions.save(_session(user, "t1"))
        users.save(user.model_copy(update={"status": "inactive"}))

        assert users.change_password(user.id, "hash-1", "hash-2", NOW) is None

        loaded = users.get_by_id(user.id)
        assert loaded is not None
        assert loaded.status == "inactive"
        assert loaded.password_hash == "hash-1"

    def test_active_account_stays_active(self, users: SQLiteUserRepo) -> None:
        user = users.save(_user("a@example.com"))
        updated = users.change_password(user.id, "hash-1", "hash-2", NOW)
        assert updated is not None
        assert updated.status == "active"


class TestLockAll:
    def test_locks_everyone_and_clears_sessions(
        self, users: SQLiteUserRepo, sessions: SQLiteSessionRepo
    ) -> None:
        a = users.save(_user("a@example.com"))
        b = users.save(_user("b@example.com"))
        sessions.save(_session(a, "ta"))
        sessions.save(_session(b, "tb"))

        locked, revoked = users.lock_all_and_revoke_sessions(NOW)

        assert revoked == 2
        assert {u.status for u in locked} == {"locked"}
        assert sessions.list_all() == []

    def test_no_session_for_locked_user(
        self, users: SQLiteUserRepo, sessions: SQLiteSessionRepo
    ) -> None:
        user = users.save(_user("a@example.com"))
        users.lock_all_and_revoke_sessions(NOW)
        assert sessions.save(_session(user, "late")) is False
        assert sessions.get("late") is None


class TestInviteRepo:
    def test_redeem_consumes_and_creates_user(
        self, invites: SQLiteInviteRepo, users: SQLiteUserRepo
    ) -> None:
        invites.save(_invite("th"))
        new_user = _user("new@example.com", ["editor"])

        redeemed = invites.redeem("th", new_user, NOW)

        assert redeemed is not None
        assert redeemed.redeemed_by_user_id == new_user.id
        assert users.get_by_email("new@example.com") is not None
        assert invites.get_open_by_token_hash("th", NOW) is None

    def test_second_redeem_gets_nothing(
        self, invites: SQLiteInviteRepo, users: SQLiteUserRepo
    ) -> None:
        invites.save(_invite("th"))
        assert invites.redeem("th", _user("one@example.com"), NOW) is not None
        assert invites.redeem("th", _user("two@example.com"), NOW) is None
        assert users.get_by_email("two@example.com") is None

    def test_duplicate_email_leaves_invite_open(
        self, invites: SQLiteInviteRepo, users: SQLiteUserRepo
    ) -> None:
        users.save(_user("taken@example.com"))
        invites.save(_invite("th"))

        with pytest.raises(DuplicateEmailError):
            invites.redeem("th", _user("taken@example.com"), NOW)

        assert invites.get_open_by_token_hash("th", NOW) is not None

    def test_expired_invite_cannot_be_redeemed(self, invites: SQLiteInviteRepo) -> None:
        invites.save(_invite("th", expires_at=NOW - timedelta(seconds=1)))
        assert invites.get_open_by_token_hash("th", NOW) is None
        assert invites.redeem("th", _user("new@example.com"), NOW) is None

    def test_concurrent_redeem_has_one_winner(
        self, invites: SQLiteInviteRepo, users: SQLiteUserRepo
    ) -> None:
        invites.save(_invite("th"))
        winners: list[bool] = []
        lock = threading.Lock()

        def attempt(i: int) -> None:
            result = invites.redeem("th", _user(f"racer{i}@example.com"), NOW)
            with lock:
                winners.append(result is not None)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert winners.count(True) == 1
        assert len([u for u in users.list_all() if u.email.startswith("racer")]) == 1

    def test_open_by_email(self, invites: SQLiteInviteRepo) -> None:
        invites.save(_invite("th", email="someone@example.com"))
        assert invites.get_open_by_email("someone@example.com", NOW) is not None
        assert invites.get_open_by_email("nobody@example.com", NOW) is None


class TestSettingsRepo:
    def test_get_or_create_is_stable(self, settings: SQLiteSettingsRepo) -> None:
        first = settings.get_or_create("db_hash", lambda: "one")
        second = settings.get_or_create("db_hash", lambda: "two")
        assert first == second == "one"

    def test_set_overwrites(self, settings: SQLiteSettingsRepo) -> None:
        settings.set("title", "A", NOW)
        settings.set("title", "B", NOW)
        assert settings.get_all() == {"title": "B"}


class TestTimestamps:
    def _stamp(self, db_path: str, sql: str, arg: str) -> datetime:
        conn = sqlite3.connect(db_path)
        try:
            return datetime.fromisoformat(conn.execute(sql, (arg,)).fetchone()[0])
        finally:
            conn.close()

    def test_owner_roles_and_settings_use_supplied_time(
        self, users: SQLiteUserRepo, db_path: str
    ) -> None:
        owner = users.create_owner(
            _user("owner@example.com", ["owner"]), {SETTING_SITE_TITLE: "Blog"}
        )

        role_at = self._stamp(
            db_path, "SELECT created_at FROM role_assignments WHERE user_id = ?", str(owner.id)
        )
        setting_at = self._stamp(
            db_path, "SELECT updated_at FROM settings WHERE key = ?", SETTING_SITE_TITLE
        )
        assert role_at == NOW
        assert setting_at == NOW

    def test_settings_set_uses_supplied_time(
        self, settings: SQLiteSettingsRepo, db_path: str
    ) -> None:
        later = NOW + timedelta(hours=3)
        settings.set("title", "A", later)

        stamped = self._stamp(db_path, "SELECT updated_at FROM settings WHERE key = ?", "title")
        assert stamped == later
