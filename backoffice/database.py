"""SQLite-backed persistence for backoffice user accounts."""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from passlib.context import CryptContext

from .errors import AccountNotFoundError, DuplicateAccountError
from .models import User

logger = logging.getLogger("backoffice.database")

# bcrypt_sha256 digests the input first, so bytes past bcrypt's 72-byte limit still count.
_pwd_context = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "backoffice.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _normalise_email(email: str) -> str:
    return email.strip().lower()


def _normalise_roles(roles: Iterable[str]) -> Tuple[str, ...]:
    seen: List[str] = []
    for role in roles:
        cleaned = role.strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


class Database:
    """Simple wrapper around SQLite for persisting user accounts."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    roles TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                );
                """
            )

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, email: str, password: str, roles: Iterable[str] = ()) -> User:
        """Persist a new account and return it."""

        normalized_email = _normalise_email(email or "")
        if not normalized_email:
            raise ValueError("Email must not be empty")
        if not password:
            raise ValueError("Password must not be empty")

        created_at = _current_timestamp()
        normalized_roles = _normalise_roles(roles)

        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (email, password_hash, roles, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        normalized_email,
                        hash_password(password),
                        json.dumps(list(normalized_roles)),
                        _serialize_datetime(created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateAccountError(
                    f'User with email "{normalized_email}" already exists!'
                ) from exc
            user_id = cursor.lastrowid

        logger.debug("Inserted user #%s <%s>", user_id, normalized_email)
        return User(id=user_id, email=normalized_email, roles=normalized_roles, created_at=created_at)

    def get_user(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (_normalise_email(email),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def set_user_roles(self, user_id: int, roles: Iterable[str]) -> User:
        """Replace the role set of an existing account."""

        normalized_roles = _normalise_roles(roles)
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET roles = ? WHERE id = ?",
                (json.dumps(list(normalized_roles)), user_id),
            )
            if cursor.rowcount == 0:
                raise AccountNotFoundError(f"User #{user_id} not found")

        refreshed = self.get_user(user_id)
        if refreshed is None:
            raise AccountNotFoundError(f"User #{user_id} not found")
        return refreshed

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (_normalise_email(email),),
            ).fetchone()
        if row is None:
            return None
        if not verify_password(password, row["password_hash"]):
            return None
        return self._row_to_user(row)

    def verify_user_password(self, user_id: int, password: str) -> bool:
        """Return ``True`` if the supplied password matches the stored hash."""

        stored_hash = self.get_password_hash(user_id)
        if not stored_hash:
            return False
        return verify_password(password, stored_hash)

    def get_password_hash(self, user_id: int) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT password_hash FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return row["password_hash"]

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        try:
            roles = json.loads(row["roles"] or "[]")
        except ValueError:
            roles = []
        return User(
            id=row["id"],
            email=row["email"],
            roles=_normalise_roles(str(role) for role in roles),
            created_at=_parse_datetime(row["created_at"]),
        )


__all__ = ["Database", "hash_password", "resolve_database_path", "verify_password"]
