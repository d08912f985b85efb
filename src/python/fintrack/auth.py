"""User authentication against the persistence gateway."""

from __future__ import annotations

import datetime as dt
import logging

import bcrypt

from fintrack.exceptions import NotAuthenticatedError, ValidationError
from fintrack.models import UserRecord
from fintrack.persistence import Eq, PersistenceBackend
from fintrack.schema import DEFAULT_ROLE, DEFAULT_SAVINGS_GOAL, DEFAULT_SAVINGS_RATE, USERS
from fintrack.session import SessionStore

logger = logging.getLogger(__name__)

USER_COLUMNS = ("id", "name", "email", "role")
INVALID_CREDENTIALS = "Incorrect email or password"
EMAIL_TAKEN = "This email is already registered"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


class AuthManager:
    """Resolve the current user and own the session store lifecycle."""

    def __init__(self, gateway: PersistenceBackend, session_store: SessionStore) -> None:
        self.gateway = gateway
        self.session_store = session_store
        self.user: UserRecord | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def restore(self) -> UserRecord | None:
        """Load the user saved by a previous session, if still present."""
        user_id = self.session_store.get_user_id()
        if user_id is None:
            return None
        row = await self.gateway.select_one(
            USERS, columns=USER_COLUMNS, filters=[Eq("id", user_id)]
        )
        if row is None:
            logger.info("Stored user %s no longer exists; clearing session", user_id)
            self.session_store.clear()
            self.user = None
            return None
        self.user = UserRecord.from_row(row)
        return self.user

    async def login(self, email: str, password: str) -> UserRecord:
        email = _normalize_email(email)
        row = await self.gateway.select_one(
            USERS,
            columns=USER_COLUMNS + ("password_hash",),
            filters=[Eq("email", email)],
        )
        if row is None or not verify_password(password, row.get("password_hash") or ""):
            raise NotAuthenticatedError(INVALID_CREDENTIALS)
        return self._start_session(UserRecord.from_row(row))

    async def register(self, name: str, email: str, password: str) -> UserRecord:
        name = (name or "").strip()
        email = _normalize_email(email)
        if not name:
            raise ValidationError("Name is required")
        if not password:
            raise ValidationError("Password is required")

        existing = await self.gateway.select_one(
            USERS, columns=("id",), filters=[Eq("email", email)]
        )
        if existing is not None:
            raise NotAuthenticatedError(EMAIL_TAKEN)

        row = await self.gateway.insert(
            USERS,
            {
                "name": name,
                "email": email,
                "password_hash": hash_password(password),
                "role": DEFAULT_ROLE,
                "created_at": dt.datetime.now().replace(microsecond=0).isoformat(),
                "savings_goal": DEFAULT_SAVINGS_GOAL,
                "savings_rate": DEFAULT_SAVINGS_RATE,
            },
        )
        logger.info("Registered user %s", row["id"])
        return self._start_session(UserRecord.from_row(row))

    def logout(self) -> None:
        self.user = None
        self.session_store.clear()

    def _start_session(self, user: UserRecord) -> UserRecord:
        self.user = user
        self.session_store.set_user_id(user.id)
        return user


def _normalize_email(email: str) -> str:
    value = (email or "").strip().lower()
    if not value:
        raise ValidationError("Email is required")
    return value
