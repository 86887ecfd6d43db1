"""User accounts and sessions."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from .config import Config
from .errors import AuthenticationError, SessionExpired, ValidationError
from .status import Role, value_of
from .store import RecordStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """An authenticated operator session."""

    user_id: str
    email: str
    role: str
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _utcnow()) >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "role": self.role,
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            data["user_id"],
            data["email"],
            data["role"],
            datetime.fromisoformat(data["expires_at"]),
        )


def create_user(store: RecordStore, email: str, password: str, role: str = Role.USER.value) -> Dict[str, Any]:
    """Add a user account with a hashed password. Emails are unique."""
    email = (email or "").strip().lower()
    role = value_of(role)
    if not email or not password:
        raise ValidationError("Email and password are required")
    if role not in (Role.ADMIN.value, Role.USER.value):
        raise ValidationError(f"Unknown role '{role}'")
    if store.find_one("users", "email", email):
        raise ValidationError(f"User '{email}' already exists")
    row = store.insert(
        "users",
        {"email": email, "password_hash": generate_password_hash(password), "role": role},
    )
    logger.info("Created %s user %s", role, email)
    return row


def ensure_admin(store: RecordStore, config: Config) -> None:
    """Create the bootstrap admin from config when the store has no users yet."""
    if not config.admin_email or not config.admin_password:
        return
    if store.query("users"):
        return
    create_user(store, config.admin_email, config.admin_password, Role.ADMIN.value)


class AuthService:
    """Login/logout and the current session of a single operator."""

    def __init__(self, store: RecordStore, ttl_minutes: int = 60):
        self.store = store
        self.ttl = timedelta(minutes=ttl_minutes)
        self._session: Optional[Session] = None

    def login(self, email: str, password: str) -> Session:
        user = self.store.find_one("users", "email", (email or "").strip().lower())
        if user is None or not check_password_hash(user["password_hash"], password or ""):
            logger.warning("Failed login for %s", email)
            raise AuthenticationError("Invalid credentials")
        self._session = Session(user["id"], user["email"], user["role"], _utcnow() + self.ttl)
        logger.info("Logged in %s", user["email"])
        return self._session

    def logout(self) -> None:
        if self._session is not None:
            logger.info("Logged out %s", self._session.email)
        self._session = None

    def resume(self, session: Session) -> None:
        """Adopt a session restored from elsewhere (e.g. a signed cookie)."""
        self._session = session

    def current_session(self, now: Optional[datetime] = None) -> Optional[Session]:
        """The live session, or None. An expired session is cleared."""
        if self._session is not None and self._session.is_expired(now):
            logger.info("Session for %s expired", self._session.email)
            self._session = None
        return self._session

    def session_expires_at(self) -> Optional[datetime]:
        return self._session.expires_at if self._session else None

    def current_user_role(self, now: Optional[datetime] = None) -> str:
        """Role of the live session; raises SessionExpired when there is none."""
        session = self.current_session(now)
        if session is None:
            raise SessionExpired("Session expired. Please log in again.")
        return session.role
