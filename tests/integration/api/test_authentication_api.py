"""
End-to-end tests for the /authentication routes.

Each test runs against a freshly migrated SQLite database with the dev
mailer swapped in so sent mail can be inspected.
"""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from staffauth.adapters.auth.crypto import Argon2AuthAdapter
from staffauth.adapters.dev_email import DevEmailAdapter
from staffauth.adapters.sqlite.repos import SQLiteInviteRepo, SQLiteSessionRepo, SQLiteUserRepo
from staffauth.api.deps import Settings, get_mailer, get_settings, load_settings_cache
from staffauth.api.main import app
from staffauth.components.password_reset import to_epoch_ms
from staffauth.components.reset_token import SignedResetTokenCodec
from staffauth.core.services.mail import RESET_PASSWORD_SUBJECT, WELCOME_SUBJECT
from staffauth.domain.entities import Invite, User

PROJECT_ROOT = Path(__file__).resolve().parents[3]

OWNER = {
    "name": "test user",
    "email": "test@example.com",
    "password": "thisissupersafe",
    "blogTitle": "a test blog",
}

# --- Fixtures ---


@pytest.fixture
def api_settings(db_path: str, tmp_path: Path) -> Settings:
    s = Settings()
    s.data_dir = tmp_path
    s.db_path = db_path
    s.rules_path = PROJECT_ROOT / "auth_rules.yaml"
    return s


@pytest.fixture
def client(api_settings: Settings, mailer: DevEmailAdapter) -> Iterator[TestClient]:
    app.dependency_overrides[get_settings] = lambda: api_settings
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def owner_client(client: TestClient) -> TestClient:
    """Client holding the owner's session cookie after setup."""
    response = client.post("/authentication/setup", json=OWNER)
    assert response.status_code == 201
    return client


@pytest.fixture
def users(db_path: str) -> SQLiteUserRepo:
    return SQLiteUserRepo(db_path)


def _add_user(users: SQLiteUserRepo, email: str, role: str, password: str = "staffpassword1") -> User:
    return users.save(
        User(
            email=email,
            display_name=email.split("@")[0],
            password_hash=Argon2AuthAdapter().hash_password(password),
            roles=[role],  # type: ignore[list-item]
        )
    )


def _login(email: str, password: str) -> TestClient:
    c = TestClient(app)
    response = c.post("/session", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return c


def _token_for(db_path: str, user: User, expires_at_ms: int) -> str:
    secret = load_settings_cache(db_path).install_secret
    return SignedResetTokenCodec().issue(user.email, expires_at_ms, secret, user.password_hash)


def _now_ms() -> int:
    return to_epoch_ms(datetime.now(UTC))


# --- Setup ---


class TestSetup:
    def test_fresh_install_is_not_configured(self, client: TestClient) -> None:
        response = client.get("/authentication/setup")
        assert response.status_code == 200
        assert response.json() == {"configured": False}

    def test_complete_setup(self, client: TestClient, mailer: DevEmailAdapter) -> None:
        response = client.post("/authentication/setup", json=OWNER)

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "test@example.com"
        assert body["roles"] == ["owner"]
        assert "password_hash" not in body
        assert client.get("/authentication/setup").json() == {"configured": True}

        welcome = mailer.get_emails_with_subject(WELCOME_SUBJECT)
        assert [e.recipient for e in welcome] == ["test@example.com"]

    def test_setup_signs_owner_in(self, owner_client: TestClient) -> None:
        me = owner_client.get("/users/me")
        assert me.status_code == 200
        assert me.json()["email"] == "test@example.com"

    def test_setup_twice_is_forbidden(self, owner_client: TestClient) -> None:
        again = dict(OWNER, email="test2@example.com")
        response = owner_client.post("/authentication/setup", json=again)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "already_configured"

    def test_setup_validation_error(self, client: TestClient) -> None:
        response = client.post("/authentication/setup", json=dict(OWNER, email="nope"))
        assert response.status_code == 400
        assert "email" in {e["field"] for e in response.json()["detail"]["errors"]}

    def test_missing_fields_are_bad_request(self, client: TestClient) -> None:
        response = client.post("/authentication/setup", json={"name": "x"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "validation"

    def test_owner_can_update_setup(self, owner_client: TestClient) -> None:
        update = {
            "name": "renamed",
            "email": "owner@example.com",
            "password": "anothersafepassword",
            "blogTitle": "new title",
        }
        response = owner_client.put("/authentication/setup", json=update)
        assert response.status_code == 200
        assert response.json()["email"] == "owner@example.com"

        # The refreshed cookie keeps the owner signed in
        assert owner_client.get("/users/me").json()["name"] == "renamed"
        _login("owner@example.com", "anothersafepassword")

    def test_update_setup_requires_authentication(self, owner_client: TestClient) -> None:
        anonymous = TestClient(app)
        assert anonymous.put("/authentication/setup", json=OWNER).status_code == 401

    def test_update_setup_by_admin_is_forbidden(
        self, owner_client: TestClient, users: SQLiteUserRepo
    ) -> None:
        _add_user(users, "admin@example.com", "admin")
        admin = _login("admin@example.com", "staffpassword1")
        response = admin.put("/authentication/setup", json=OWNER)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "forbidden"


# --- Invitations ---


class TestInvitation:
    @pytest.fixture
    def invite_token(self, owner_client: TestClient, users: SQLiteUserRepo, db_path: str) -> str:
        owner = users.get_by_email("test@example.com")
        assert owner is not None
        auth = Argon2AuthAdapter()
        token = "invite-token-value"
        SQLiteInviteRepo(db_path).save(
            Invite(
                token_hash=auth.hash_token(token),
                email="invited@example.com",
                role="author",
                expires_at=datetime.now(UTC) + timedelta(days=7),
                invited_by_user_id=owner.id,
            )
        )
        return token

    def test_check_invalid_email(self, client: TestClient) -> None:
        response = client.get("/authentication/invitation", params={"email": "invalidemail"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "validation"

    def test_check_not_invited(self, client: TestClient) -> None:
        response = client.get("/authentication/invitation", params={"email": "x@example.com"})
        assert response.status_code == 200
        assert response.json() == {"isInvited": False, "invitedBy": None}

    def test_check_invited(self, client: TestClient, invite_token: str) -> None:
        response = client.get(
            "/authentication/invitation", params={"email": "invited@example.com"}
        )
        assert response.json() == {"isInvited": True, "invitedBy": "test user"}

    def test_accept_without_invite_is_not_found(self, client: TestClient) -> None:
        response = client.post(
            "/authentication/invitation",
            json={
                "token": "lul11111",
                "password": "lel123456",
                "email": "not-invited@example.org",
                "name": "not invited",
            },
        )
        assert response.status_code == 404

    def test_accept_with_existing_email_then_retry(
        self, client: TestClient, invite_token: str
    ) -> None:
        clash = {
            "token": invite_token,
            "password": "12345678910",
            "email": "test@example.com",
            "name": "clash",
        }
        assert client.post("/authentication/invitation", json=clash).status_code == 422

        ok = dict(clash, email="invited@example.com", name="invited")
        response = client.post("/authentication/invitation", json=ok)
        assert response.status_code == 200
        assert response.json()["roles"] == ["author"]

        # Consumed tokens behave as if they never existed
        again = dict(ok, email="someone-else@example.com")
        assert client.post("/authentication/invitation", json=again).status_code == 404

    def test_accepted_user_is_signed_in(self, invite_token: str) -> None:
        fresh = TestClient(app)
        response = fresh.post(
            "/authentication/invitation",
            json={
                "token": invite_token,
                "password": "12345678910",
                "email": "invited@example.com",
                "name": "invited",
            },
        )
        assert response.status_code == 200
        assert fresh.get("/users/me").json()["email"] == "invited@example.com"


# --- Password reset ---


class TestPasswordReset:
    def test_request_always_succeeds(
        self, owner_client: TestClient, mailer: DevEmailAdapter
    ) -> None:
        mailer.clear()
        unknown = owner_client.post("/authentication/passwordreset", json={"email": "x@example.com"})
        known = owner_client.post("/authentication/passwordreset", json={"email": OWNER["email"]})

        assert unknown.status_code == known.status_code == 200
        assert unknown.json() == known.json()
        assert [e.recipient for e in mailer.get_emails_with_subject(RESET_PASSWORD_SUBJECT)] == [
            "test@example.com"
        ]

    def test_reset_changes_password_and_revokes_sessions(
        self, owner_client: TestClient, users: SQLiteUserRepo, db_path: str
    ) -> None:
        owner = users.get_by_email("test@example.com")
        assert owner is not None
        token = _token_for(db_path, owner, _now_ms() + 60_000)

        response = TestClient(app).put(
            "/authentication/passwordreset",
            json={
                "token": token,
                "newPassword": "thisisanewpassword",
                "confirmPassword": "thisisanewpassword",
            },
        )

        assert response.status_code == 200
        assert SQLiteSessionRepo(db_path).list_all() == []
        assert owner_client.get("/users/me").status_code == 401
        _login("test@example.com", "thisisanewpassword")

    def test_expired_token_is_bad_request(
        self, owner_client: TestClient, users: SQLiteUserRepo, db_path: str
    ) -> None:
        owner = users.get_by_email("test@example.com")
        assert owner is not None
        token = _token_for(db_path, owner, _now_ms() - 60_000)

        response = owner_client.put(
            "/authentication/passwordreset",
            json={
                "token": token,
                "newPassword": "thisissupersafe1",
                "confirmPassword": "thisissupersafe1",
            },
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_or_expired"

    def test_token_after_password_change_is_bad_request(
        self, owner_client: TestClient, users: SQLiteUserRepo, db_path: str
    ) -> None:
        owner = users.get_by_email("test@example.com")
        assert owner is not None
        token = _token_for(db_path, owner, _now_ms() + 60_000)

        users.change_password(
            owner.id,
            owner.password_hash,
            Argon2AuthAdapter().hash_password("changedelsewhere"),
            datetime.now(UTC),
        )

        response = owner_client.put(
            "/authentication/passwordreset",
            json={
                "token": token,
                "newPassword": "thisissupersafe1",
                "confirmPassword": "thisissupersafe1",
            },
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_or_expired"

    def test_corrupted_token_is_unauthorized(self, owner_client: TestClient) -> None:
        response = owner_client.put(
            "/authentication/passwordreset",
            json={
                "token": "invalid-token",
                "newPassword": "thisissupersafe1",
                "confirmPassword": "thisissupersafe1",
            },
        )
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "unauthorized"

    def test_mismatched_passwords_is_bad_request(
        self, owner_client: TestClient, users: SQLiteUserRepo, db_path: str
    ) -> None:
        owner = users.get_by_email("test@example.com")
        assert owner is not None
        token = _token_for(db_path, owner, _now_ms() + 60_000)
        response = owner_client.put(
            "/authentication/passwordreset",
            json={
                "token": token,
                "newPassword": "thisissupersafe1",
                "confirmPassword": "different12345",
            },
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "validation"


# --- Mass reset ---


class TestResetAllPasswords:
    def test_reset_all(
        self,
        owner_client: TestClient,
        users: SQLiteUserRepo,
        mailer: DevEmailAdapter,
        db_path: str,
    ) -> None:
        _add_user(users, "admin@example.com", "admin")
        _add_user(users, "editor@example.com", "editor")
        _login("admin@example.com", "staffpassword1")
        _login("editor@example.com", "staffpassword1")
        mailer.clear()

        response = owner_client.post("/authentication/reset_all_passwords", json={})

        assert response.status_code == 200
        assert all(u.status == "locked" for u in users.list_all())
        assert SQLiteSessionRepo(db_path).list_all() == []

        reset_mails = mailer.get_emails_with_subject(RESET_PASSWORD_SUBJECT)
        assert len(reset_mails) == 2
        assert {e.recipient for e in reset_mails} == {"test@example.com", "admin@example.com"}

    def test_locked_users_cannot_sign_in(self, owner_client: TestClient) -> None:
        owner_client.post("/authentication/reset_all_passwords", json={})
        response = TestClient(app).post(
            "/session", json={"email": OWNER["email"], "password": OWNER["password"]}
        )
        assert response.status_code == 401

    def test_editor_is_forbidden(self, owner_client: TestClient, users: SQLiteUserRepo) -> None:
        _add_user(users, "editor@example.com", "editor")
        editor = _login("editor@example.com", "staffpassword1")
        response = editor.post("/authentication/reset_all_passwords", json={})
        assert response.status_code == 403
        assert all(u.status == "active" for u in users.list_all())

    def test_anonymous_is_unauthorized(self, client: TestClient) -> None:
        assert client.post("/authentication/reset_all_passwords", json={}).status_code == 401
