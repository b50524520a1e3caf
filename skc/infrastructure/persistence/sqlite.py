import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ...domain.models import AuditEvent, ErrorKind, Outcome, User
from ...domain.models.constants import ANONYMOUS_USER, ROLE_ADMIN, ROLE_USER
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

# Columns a caller may sort the managed-user listing by.
SORTABLE_COLUMNS = {
    "id",
    "login",
    "first_name",
    "last_name",
    "email",
    "activated",
    "lang_key",
    "created_by",
    "created_date",
    "last_modified_by",
    "last_modified_date",
}


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Path) -> None:
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    login TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    first_name TEXT,
                    last_name TEXT,
                    email TEXT UNIQUE,
                    image_url TEXT,
                    lang_key TEXT,
                    activated INTEGER NOT NULL DEFAULT 0,
                    activation_key TEXT,
                    reset_key TEXT,
                    reset_date TEXT,
                    created_by TEXT NOT NULL,
                    created_date TEXT NOT NULL,
                    last_modified_by TEXT,
                    last_modified_date TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_users_activation_key
                    ON users(activation_key);

                CREATE INDEX IF NOT EXISTS idx_users_reset_key
                    ON users(reset_key);

                CREATE INDEX IF NOT EXISTS idx_users_activated_created
                    ON users(activated, created_date);

                CREATE TABLE IF NOT EXISTS authorities (
                    name TEXT PRIMARY KEY
                );

                CREATE TABLE IF NOT EXISTS user_authorities (
                    user_id INTEGER NOT NULL,
                    authority_name TEXT NOT NULL,
                    PRIMARY KEY (user_id, authority_name),
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                    FOREIGN KEY(authority_name) REFERENCES authorities(name)
                );

                CREATE TABLE IF NOT EXISTS audit_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    principal TEXT NOT NULL,
                    event_date TEXT NOT NULL,
                    event_type TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_audit_events_principal_date
                    ON audit_events(principal, event_date);

                CREATE TABLE IF NOT EXISTS audit_event_data (
                    event_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    value VARCHAR(255),
                    PRIMARY KEY (event_id, name),
                    FOREIGN KEY(event_id) REFERENCES audit_events(id) ON DELETE CASCADE
                );
                """
            )
            self._conn.executemany(
                "INSERT OR IGNORE INTO authorities (name) VALUES (?)",
                [(ROLE_ADMIN,), (ROLE_USER,)],
            )

    def close(self) -> None:
        self._conn.close()

    # AuthorityRepository API -----------------------------------------------
    def get_authorities(self) -> List[str]:
        with self._lock:
            cur = self._conn.execute("SELECT name FROM authorities ORDER BY name ASC")
            rows = cur.fetchall()
        return [row["name"] for row in rows]

    # AuditEventRepository API ----------------------------------------------
    def add_audit_event(self, event: AuditEvent) -> AuditEvent:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "INSERT INTO audit_events (principal, event_date, event_type) VALUES (?, ?, ?)",
                (event.principal, self._to_iso(event.event_date), event.event_type),
            )
            event_id = cur.lastrowid
            self._conn.executemany(
                "INSERT INTO audit_event_data (event_id, name, value) VALUES (?, ?, ?)",
                [(event_id, name, value) for name, value in event.data.items()],
            )
            stored = self._select_audit_events("SELECT * FROM audit_events WHERE id = ?", (event_id,))
        return stored[0]

    def get_audit_event(self, event_id: int) -> Optional[AuditEvent]:
        with self._lock:
            events = self._select_audit_events("SELECT * FROM audit_events WHERE id = ?", (event_id,))
        return events[0] if events else None

    def find_audit_events(
        self,
        principal: Optional[str] = None,
        after: Optional[datetime] = None,
        event_type: Optional[str] = None,
    ) -> List[AuditEvent]:
        clauses = []
        params: List[Any] = []
        if principal is not None:
            clauses.append("principal = ?")
            params.append(principal)
        if after is not None:
            clauses.append("event_date > ?")
            params.append(self._to_iso(after))
        if event_type is not None:
            clauses.append("event_type = ?")
            params.append(event_type)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            return self._select_audit_events(f"SELECT * FROM audit_events {where} ORDER BY id ASC", params)

    def list_audit_events(
        self,
        from_date: Optional[datetime],
        to_date: Optional[datetime],
        offset: int,
        limit: int,
    ) -> Tuple[List[AuditEvent], int]:
        clauses = []
        params: List[Any] = []
        if from_date is not None:
            clauses.append("event_date >= ?")
            params.append(self._to_iso(from_date))
        if to_date is not None:
            clauses.append("event_date < ?")
            params.append(self._to_iso(to_date))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            total = self._conn.execute(f"SELECT COUNT(*) FROM audit_events {where}", params).fetchone()[0]
            events = self._select_audit_events(
                f"SELECT * FROM audit_events {where} ORDER BY event_date DESC, id DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            )
        return events, total

    # UserRepository API ----------------------------------------------------
    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def get_user_by_login(self, login: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE login = ?", (login.lower(),))

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE lower(email) = ?", (email.lower(),))

    def get_user_by_activation_key(self, key: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE activation_key = ?", (key,))

    def get_user_by_reset_key(self, key: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE reset_key = ?", (key,))

    def create_user(self, user: User, actor: str = "system") -> Outcome[User]:
        return self.replace_unactivated_and_create((), user, actor)

    def replace_unactivated_and_create(
        self,
        stale_user_ids: Iterable[int],
        user: User,
        actor: str = "system",
    ) -> Outcome[User]:
        """
        Delete never-activated records and insert ``user`` in one transaction.

        A record in ``stale_user_ids`` that got activated in the meantime is
        kept. If the insert is rejected the deletions are rolled back.
        """
        now = self._now()
        user.created_by = actor
        user.created_date = user.created_date or now
        user.last_modified_by = actor
        user.last_modified_date = now
        try:
            with self._lock, self._conn:
                for stale_id in stale_user_ids:
                    self._conn.execute("DELETE FROM users WHERE id = ? AND activated = 0", (stale_id,))
                user_id = self._insert_user(user)
                self._replace_authorities(user_id, user.authorities)
                created = self._select_users("SELECT * FROM users WHERE id = ?", (user_id,))
        except sqlite3.IntegrityError as exc:
            return self._conflict(exc)
        if not created:
            raise RuntimeError("Failed to persist user.")
        return Outcome.success(created[0])

    def update_user(self, user: User, actor: str = "system") -> Outcome[User]:
        if user.id is None:
            raise ValueError("Cannot update a user that has not been persisted.")
        user.last_modified_by = actor
        user.last_modified_date = self._now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    UPDATE users SET
                        login = ?, password_hash = ?, first_name = ?, last_name = ?,
                        email = ?, image_url = ?, lang_key = ?, activated = ?,
                        activation_key = ?, reset_key = ?, reset_date = ?,
                        last_modified_by = ?, last_modified_date = ?
                    WHERE id = ?
                    """,
                    (
                        user.login,
                        user.password_hash,
                        user.first_name,
                        user.last_name,
                        user.email,
                        user.image_url,
                        user.lang_key,
                        int(user.activated),
                        user.activation_key,
                        user.reset_key,
                        self._to_iso(user.reset_date),
                        user.last_modified_by,
                        self._to_iso(user.last_modified_date),
                        user.id,
                    ),
                )
                if cur.rowcount == 0:
                    return Outcome.failure(ErrorKind.NOT_FOUND)
                self._replace_authorities(user.id, user.authorities)
                updated = self._select_users("SELECT * FROM users WHERE id = ?", (user.id,))
        except sqlite3.IntegrityError as exc:
            return self._conflict(exc)
        return Outcome.success(updated[0])

    def delete_user(self, user_id: int) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM users WHERE id = ?", (user_id,))

    def list_managed_users(
        self,
        offset: int,
        limit: int,
        sort: Sequence[Tuple[str, bool]] = (),
    ) -> Tuple[List[User], int]:
        order_by = []
        for column, ascending in sort:
            if column not in SORTABLE_COLUMNS:
                raise ValueError(f"Cannot sort users by '{column}'.")
            order_by.append(f"{column} {'ASC' if ascending else 'DESC'}")
        if not order_by:
            order_by.append("id ASC")
        query = f"SELECT * FROM users WHERE login != ? ORDER BY {', '.join(order_by)} LIMIT ? OFFSET ?"
        with self._lock:
            cur = self._conn.execute("SELECT COUNT(*) FROM users WHERE login != ?", (ANONYMOUS_USER,))
            total = cur.fetchone()[0]
            users = self._select_users(query, (ANONYMOUS_USER, limit, offset))
        return users, total

    def find_unactivated_created_before(self, cutoff: datetime) -> List[User]:
        with self._lock:
            return self._select_users(
                "SELECT * FROM users WHERE activated = 0 AND created_date < ? ORDER BY id ASC",
                (self._to_iso(cutoff),),
            )

    # Helpers ----------------------------------------------------------------
    def _fetch_one(self, query: str, params: Iterable[Any]) -> Optional[User]:
        with self._lock:
            users = self._select_users(query, params)
        return users[0] if users else None

    def _insert_user(self, user: User) -> int:
        # Caller must hold self._lock inside a transaction.
        cur = self._conn.execute(
            """
            INSERT INTO users (
                login, password_hash, first_name, last_name, email, image_url,
                lang_key, activated, activation_key, reset_key, reset_date,
                created_by, created_date, last_modified_by, last_modified_date
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user.login,
                user.password_hash,
                user.first_name,
                user.last_name,
                user.email,
                user.image_url,
                user.lang_key,
                int(user.activated),
                user.activation_key,
                user.reset_key,
                self._to_iso(user.reset_date),
                user.created_by,
                self._to_iso(user.created_date),
                user.last_modified_by,
                self._to_iso(user.last_modified_date),
            ),
        )
        return cur.lastrowid

    def _select_users(self, query: str, params: Iterable[Any]) -> List[User]:
        # Caller must hold self._lock.
        rows = self._conn.execute(query, tuple(params)).fetchall()
        if not rows:
            return []
        ids = [row["id"] for row in rows]
        placeholders = ", ".join("?" for _ in ids)
        cur = self._conn.execute(
            f"SELECT user_id, authority_name FROM user_authorities WHERE user_id IN ({placeholders})",
            ids,
        )
        authorities: Dict[int, List[str]] = {}
        for row in cur.fetchall():
            authorities.setdefault(row["user_id"], []).append(row["authority_name"])
        return [self._row_to_user(row, authorities.get(row["id"], [])) for row in rows]

    def _select_audit_events(self, query: str, params: Iterable[Any]) -> List[AuditEvent]:
        # Caller must hold self._lock.
        rows = self._conn.execute(query, tuple(params)).fetchall()
        if not rows:
            return []
        ids = [row["id"] for row in rows]
        placeholders = ", ".join("?" for _ in ids)
        cur = self._conn.execute(
            f"SELECT event_id, name, value FROM audit_event_data WHERE event_id IN ({placeholders})",
            ids,
        )
        data: Dict[int, Dict[str, str]] = {}
        for row in cur.fetchall():
            data.setdefault(row["event_id"], {})[row["name"]] = row["value"]
        return [
            AuditEvent(
                id=row["id"],
                principal=row["principal"],
                event_type=row["event_type"],
                event_date=self._parse_datetime(row["event_date"]),
                data=data.get(row["id"], {}),
            )
            for row in rows
        ]

    def _replace_authorities(self, user_id: int, names: Iterable[str]) -> None:
        # Caller must hold self._lock inside a transaction.
        self._conn.execute("DELETE FROM user_authorities WHERE user_id = ?", (user_id,))
        self._conn.executemany(
            """
            INSERT INTO user_authorities (user_id, authority_name)
            SELECT ?, name FROM authorities WHERE name = ?
            """,
            [(user_id, name) for name in sorted(names)],
        )

    @staticmethod
    def _conflict(exc: sqlite3.IntegrityError) -> Outcome[User]:
        message = str(exc)
        if "users.login" in message:
            logger.debug("Login unique constraint rejected write: %s", message)
            return Outcome.failure(ErrorKind.LOGIN_IN_USE)
        if "users.email" in message:
            logger.debug("Email unique constraint rejected write: %s", message)
            return Outcome.failure(ErrorKind.EMAIL_IN_USE)
        raise exc

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc).replace(microsecond=0)

    @staticmethod
    def _to_iso(value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            result = datetime.fromisoformat(value)
        except ValueError:
            # Fallback for legacy formats without 'T'
            result = datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _row_to_user(self, row: sqlite3.Row, authorities: Iterable[str]) -> User:
        return User(
            id=row["id"],
            login=row["login"],
            password_hash=row["password_hash"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            image_url=row["image_url"],
            lang_key=row["lang_key"],
            activated=bool(row["activated"]),
            activation_key=row["activation_key"],
            reset_key=row["reset_key"],
            reset_date=self._parse_datetime(row["reset_date"]),
            authorities=authorities,
            created_by=row["created_by"],
            created_date=self._parse_datetime(row["created_date"]),
            last_modified_by=row["last_modified_by"],
            last_modified_date=self._parse_datetime(row["last_modified_date"]),
        )
