import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from staffauth.domain.entities import Invite, Session, User
from staffauth.domain.errors import DuplicateEmailError, OwnerExistsError


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _iso(dt: datetime) -> str:
    # Fixed-width UTC timestamps so SQL string comparison orders correctly
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def _parse_dt(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


class _SQLiteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly with BEGIN IMMEDIATE
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Write transaction holding the database write lock from the first read."""
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()


# --- Shared row helpers ---


def _insert_user(conn: sqlite3.Connection, user: User) -> None:
    try:
        conn.execute(
            """
            INSERT INTO users (
                id, email, display_name, password_hash, status, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
            (
                str(user.id),
                user.email,
                user.display_name,
                user.password_hash,
                user.status,
                _iso(user.created_at),
                _iso(user.updated_at),
            ),
        )
    except sqlite3.IntegrityError as e:
        if "users.email" in str(e):
            raise DuplicateEmailError(user.email) from e
        raise
    _replace_roles(conn, user, user.updated_at)


def _replace_roles(conn: sqlite3.Connection, user: User, now: datetime) -> None:
    conn.execute("DELETE FROM role_assignments WHERE user_id = ?", (str(user.id),))
    now_iso = _iso(now)
    for role in user.roles:
        try:
            conn.execute(
                "INSERT INTO role_assignments (id, user_id, role, created_at) VALUES (?, ?, ?, ?)",
                (str(uuid4()), str(user.id), role, now_iso),
            )
        except sqlite3.IntegrityError as e:
            if role == "owner":
                raise OwnerExistsError() from e
            raise


def _upsert_settings(conn: sqlite3.Connection, values: dict[str, str], now: datetime) -> None:
    now_iso = _iso(now)
    for key, value in values.items():
        conn.execute(
            """
            INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
        """,
            (key, value, now_iso),
        )


def _map_row_to_user(conn: sqlite3.Connection, row: dict[str, Any]) -> User:
    role_rows = conn.execute(
        "SELECT role FROM role_assignments WHERE user_id = ? ORDER BY role", (row["id"],)
    ).fetchall()
    roles = [r["role"] for r in role_rows]

    return User(
        id=UUID(row["id"]),
        email=row["email"],
        display_name=row["display_name"],
        password_hash=row["password_hash"],
        roles=roles,
        status=row["status"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SQLiteUserRepo(_SQLiteRepo):
    def save(self, user: User) -> User:
        with self._transaction() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (
                        id, email, display_name, password_hash, status, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        email=excluded.email,
                        display_name=excluded.display_name,
                        password_hash=excluded.password_hash,
                        status=excluded.status,
                        updated_at=excluded.updated_at
                """,
                    (
                        str(user.id),
                        user.email,
                        user.display_name,
                        user.password_hash,
                        user.status,
                        _iso(user.created_at),
                        _iso(user.updated_at),
                    ),
                )
            except sqlite3.IntegrityError as e:
                if "users.email" in str(e):
                    raise DuplicateEmailError(user.email) from e
                raise
            _replace_roles(conn, user, user.updated_at)
        return user

    def get_by_email(self, email: str) -> User | None:
        conn = self._get_conn()
        try:
            # email column is COLLATE NOCASE
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            if not row:
                return None
            return _map_row_to_user(conn, row)
        finally:
            conn.close()

    def get_by_id(self, user_id: UUID) -> User | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
            if not row:
                return None
            return _map_row_to_user(conn, row)
        finally:
            conn.close()

    def list_all(self) -> list[User]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, email").fetchall()
            return [_map_row_to_user(conn, row) for row in rows]
        finally:
            conn.close()

    def get_owner(self) -> User | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT u.* FROM users u
                JOIN role_assignments r ON r.user_id = u.id
                WHERE r.role = 'owner'
            """
            ).fetchone()
            if not row:
                return None
            return _map_row_to_user(conn, row)
        finally:
            conn.close()

    def create_owner(self, owner: User, settings: dict[str, str]) -> User:
        """
        Insert the owner and the given settings in one transaction.

        Raises OwnerExistsError if an owner already exists and
        DuplicateEmailError if the email belongs to another user.
        """
        with self._transaction() as conn:
            existing = conn.execute(
                "SELECT 1 FROM role_assignments WHERE role = 'owner'"
            ).fetchone()
            if existing:
                raise OwnerExistsError()
            _insert_user(conn, owner)
            _upsert_settings(conn, settings, owner.updated_at)
        return owner

    def update_owner(
        self, owner: User, settings: dict[str, str], revoke_sessions: bool
    ) -> User:
        """Rewrite the owner's profile and settings; drop their sessions if the verifier changed."""
        with self._transaction() as conn:
            try:
                cursor = conn.execute(
                    """
                    UPDATE users
                    SET email = ?, display_name = ?, password_hash = ?, updated_at = ?
                    WHERE id = ?
                """,
                    (
                        owner.email,
                        owner.display_name,
                        owner.password_hash,
                        _iso(owner.updated_at),
                        str(owner.id),
                    ),
                )
            except sqlite3.IntegrityError as e:
                if "users.email" in str(e):
                    raise DuplicateEmailError(owner.email) from e
                raise
            if cursor.rowcount == 0:
                raise LookupError(f"User {owner.id} not found")
            if revoke_sessions:
                conn.execute("DELETE FROM sessions WHERE user_id = ?", (str(owner.id),))
            _upsert_settings(conn, settings, owner.updated_at)
        return owner

    def change_password(
        self, user_id: UUID, expected_hash: str, new_hash: str, now: datetime
    ) -> User | None:
        """
        Compare-and-swap the password verifier, lift a lock and destroy
        every session of the user, atomically.

        Returns None when the stored verifier is no longer `expected_hash`
        (a concurrent password change won) or the account is inactive.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE users
                SET password_hash = ?,
                    status = CASE WHEN status = 'locked' THEN 'active' ELSE status END,
                    updated_at = ?
                WHERE id = ? AND password_hash = ? AND status != 'inactive'
            """,
                (new_hash, _iso(now), str(user_id), expected_hash),
            )
            if cursor.rowcount == 0:
                return None
            conn.execute("DELETE FROM sessions WHERE user_id = ?", (str(user_id),))
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
            return _map_row_to_user(conn, row)

    def lock_all_and_revoke_sessions(self, now: datetime) -> tuple[list[User], int]:
        """Lock every account and delete every session in one transaction."""
        with self._transaction() as conn:
            conn.execute(
                "UPDATE users SET status = 'locked', updated_at = ?", (_iso(now),)
            )
            revoked = conn.execute("DELETE FROM sessions").rowcount
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, email").fetchall()
            users = [_map_row_to_user(conn, row) for row in rows]
        return users, revoked


class SQLiteInviteRepo(_SQLiteRepo):
    def save(self, invite: Invite) -> Invite:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO invites (
                    id, token_hash, email, role, expires_at, invited_by_user_id,
                    redeemed_at, redeemed_by_user_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    token_hash=excluded.token_hash,
                    email=excluded.email,
                    role=excluded.role,
                    expires_at=excluded.expires_at,
                    redeemed_at=excluded.redeemed_at,
                    redeemed_by_user_id=excluded.redeemed_by_user_id
            """,
                (
                    str(invite.id),
                    invite.token_hash,
                    invite.email,
                    invite.role,
                    _iso(invite.expires_at),
                    str(invite.invited_by_user_id) if invite.invited_by_user_id else None,
                    _iso(invite.redeemed_at) if invite.redeemed_at else None,
                    str(invite.redeemed_by_user_id) if invite.redeemed_by_user_id else None,
                    _iso(invite.created_at),
                ),
            )
        return invite

    def get_by_token_hash(self, token_hash: str) -> Invite | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM invites WHERE token_hash = ?", (token_hash,)
            ).fetchone()
            if not row:
                return None
            return self._map_row(row)
        finally:
            conn.close()

    def get_open_by_token_hash(self, token_hash: str, now: datetime) -> Invite | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM invites WHERE token_hash = ? "
                "AND redeemed_at IS NULL AND expires_at >= ?",
                (token_hash, _iso(now)),
            ).fetchone()
            if not row:
                return None
            return self._map_row(row)
        finally:
            conn.close()

    def get_open_by_email(self, email: str, now: datetime) -> Invite | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM invites WHERE email = ? "
                "AND redeemed_at IS NULL AND expires_at >= ? "
                "ORDER BY created_at DESC LIMIT 1",
                (email, _iso(now)),
            ).fetchone()
            if not row:
                return None
            return self._map_row(row)
        finally:
            conn.close()

    def redeem(self, token_hash: str, user: User, now: datetime) -> Invite | None:
        """
        Consume an open invite and create its user as one unit.

        The conditional UPDATE is the claim: of two concurrent redemptions
        only one matches `redeemed_at IS NULL`. Returns None when there is
        nothing left to claim. DuplicateEmailError rolls the claim back, so
        the invite stays redeemable.
        """
        with self._transaction() as conn:
            claimed = conn.execute(
                """
                UPDATE invites SET redeemed_at = ?
                WHERE token_hash = ? AND redeemed_at IS NULL AND expires_at >= ?
                RETURNING *
            """,
                (_iso(now), token_hash, _iso(now)),
            ).fetchall()
            if not claimed:
                return None
            row = claimed[0]

            _insert_user(conn, user)
            conn.execute(
                "UPDATE invites SET redeemed_by_user_id = ? WHERE id = ?",
                (str(user.id), row["id"]),
            )
            invite = self._map_row(row)
        return invite.model_copy(update={"redeemed_by_user_id": user.id})

    def _map_row(self, row: dict[str, Any]) -> Invite:
        return Invite(
            id=UUID(row["id"]),
            token_hash=row["token_hash"],
            email=row["email"],
            role=row["role"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
            invited_by_user_id=(
                UUID(row["invited_by_user_id"]) if row["invited_by_user_id"] else None
            ),
            redeemed_at=_parse_dt(row["redeemed_at"]),
            redeemed_by_user_id=(
                UUID(row["redeemed_by_user_id"]) if row["redeemed_by_user_id"] else None
            ),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteSessionRepo(_SQLiteRepo):
    """Server-side sessions keyed by the SHA-256 of the session token."""

    def get(self, token_hash: str) -> Session | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM sessions WHERE token_hash = ?", (token_hash,)
            ).fetchone()
            if not row:
                return None
            return self._map_row(row)
        finally:
            conn.close()

    def save(self, session: Session) -> bool:
        """
        Store a session only while its user is active.

        Returns False when the user is locked, inactive or gone, so a login
        racing a mass reset cannot leave a session behind.
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO sessions (id, token_hash, user_id, expires_at, created_at)
                SELECT ?, ?, ?, ?, ?
                WHERE EXISTS (SELECT 1 FROM users WHERE id = ? AND status = 'active')
            """,
                (
                    session.id,
                    session.token_hash,
                    str(session.user_id),
                    _iso(session.expires_at),
                    _iso(session.created_at),
                    str(session.user_id),
                ),
            )
            return cursor.rowcount == 1

    def delete(self, token_hash: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM sessions WHERE token_hash = ?", (token_hash,))

    def list_all(self) -> list[Session]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM sessions ORDER BY created_at").fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> Session:
        return Session(
            id=row["id"],
            user_id=UUID(row["user_id"]),
            token_hash=row["token_hash"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteSettingsRepo(_SQLiteRepo):
    """Key/value site settings."""

    def get(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def get_all(self) -> dict[str, str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT key, value FROM settings").fetchall()
            return {r["key"]: r["value"] for r in rows}
        finally:
            conn.close()

    def set(self, key: str, value: str, now: datetime) -> None:
        with self._transaction() as conn:
            _upsert_settings(conn, {key: value}, now)

    def get_or_create(self, key: str, factory: Callable[[], str]) -> str:
        """Return the stored value, inserting `factory()` first if the key is absent."""
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
                (key, factory(), _iso(datetime.now(UTC))),
            )
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
            return str(row["value"])
