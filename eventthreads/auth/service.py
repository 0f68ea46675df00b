"""
Authentication service layer.

- Username/password users with bcrypt hashes
- A configuration-bound admin principal (not a stored user)
- Opaque session tokens: 7 days for users, 24 hours for the admin
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

import bcrypt

from ..core.membership import AdminPrincipal
from ..models.user import User
from ..stores.session_store import SessionStore
from ..stores.user_store import UserStore
from ..utils.config import AuthSettings
from ..utils.exceptions import UnauthorizedError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 30
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _require_credentials(username: Optional[str], password: Optional[str]) -> None:
    if not username:
        raise ValidationError("Username is required", field="username")
    if not password:
        raise ValidationError("Password is required", field="password")


def validate_registration(username: Optional[str], password: Optional[str]) -> None:
    """Field-specific registration checks, in the order users hit them."""
    _require_credentials(username, password)
    name = username.strip()
    if len(name) < MIN_USERNAME_LENGTH:
        raise ValidationError(
            f"Username must be at least {MIN_USERNAME_LENGTH} characters long", field="username"
        )
    if len(name) > MAX_USERNAME_LENGTH:
        raise ValidationError(
            f"Username cannot be longer than {MAX_USERNAME_LENGTH} characters", field="username"
        )
    if not USERNAME_PATTERN.match(name):
        raise ValidationError(
            "Username can only contain letters, numbers, and underscores", field="username"
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long", field="password"
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password cannot be longer than {MAX_PASSWORD_LENGTH} characters", field="password"
        )


class AuthService:
    """Registration, login and session resolution"""

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        admin: AdminPrincipal,
        settings: Optional[AuthSettings] = None,
    ):
        self.users = users
        self.sessions = sessions
        self.admin = admin
        self.settings = settings or AuthSettings()

    def _admin_public(self) -> Dict[str, Any]:
        return {"id": self.admin.user_id, "username": self.admin.username, "isAdmin": True}

    def register(self, username: Optional[str], password: Optional[str]) -> Tuple[User, str]:
        """Create an account and open a session. Raises ConflictError if the name is taken."""
        validate_registration(username, password)
        user = self.users.create_user(
            username, hash_password(password, rounds=self.settings.bcrypt_rounds)
        )
        token = self.sessions.create_session(
            user.id, timedelta(days=self.settings.session_expiry_days)
        )
        logger.info("User registered", user_id=user.id, username=user.username)
        return user, token

    def login(
        self, username: Optional[str], password: Optional[str], is_admin: bool = False
    ) -> Tuple[Dict[str, Any], str]:
        """Return (public user, token) or raise with an actionable message."""
        _require_credentials(username, password)
        if is_admin:
            return self._login_admin(username, password)

        user = self.users.find_by_username(username)
        if not user:
            logger.info("Login failed: unknown username", username=username)
            raise UnauthorizedError(
                "Username not found. Please check your username or create a new account."
            )
        if not user.password_hash:
            logger.info("Login failed: legacy account without password", username=username)
            raise ValidationError(
                "This account needs to be updated. Please create a new account with a password."
            )
        if not verify_password(password, user.password_hash):
            logger.info("Login failed: wrong password", username=username)
            raise UnauthorizedError(
                "Incorrect password. Please check your password and try again."
            )

        token = self.sessions.create_session(
            user.id, timedelta(days=self.settings.session_expiry_days)
        )
        try:
            user = self.users.touch_login(user.id) or user
        except Exception as e:
            # Login still succeeds when last_login cannot be recorded.
            logger.warning("Could not update last login time", user_id=user.id, error=str(e))
        logger.info("User logged in", user_id=user.id, username=user.username)
        return user.to_public(), token

    def _login_admin(self, username: str, password: str) -> Tuple[Dict[str, Any], str]:
        if not self.admin.login_enabled:
            logger.warning("Admin login attempted but no admin credentials are configured")
            raise UnauthorizedError("Admin login is not configured")
        if username != self.admin.username:
            logger.info("Admin login failed: invalid username", username=username)
            raise UnauthorizedError("Invalid admin username")
        if password != self.admin.password:
            logger.info("Admin login failed: invalid password", username=username)
            raise UnauthorizedError("Invalid admin password")
        token = self.sessions.create_session(
            self.admin.user_id, timedelta(hours=self.settings.admin_session_expiry_hours)
        )
        logger.info("Admin logged in", username=username)
        return self._admin_public(), token

    def resolve(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """Public principal behind a session token, or None."""
        session = self.sessions.resolve(token or "")
        if not session:
            return None
        user_id = session["user_id"]
        if user_id == self.admin.user_id:
            if not self.admin.login_enabled:
                self.sessions.revoke(token)
                return None
            return self._admin_public()
        user = self.users.find_by_id(user_id)
        if not user:
            self.sessions.revoke(token)
            return None
        return user.to_public()

    def logout(self, token: Optional[str]) -> None:
        """Always succeeds; a presented token is revoked."""
        if token:
            self.sessions.revoke(token)
