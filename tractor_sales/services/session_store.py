# tractor_sales/services/session_store.py
"""
Session/Auth store.

Owns the two persisted keys (`token`, `user`) of whatever mapping it wraps
(the Flask session cookie in the app, a plain dict in tests). It is the only
writer of those keys; views read the current user through it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping

from flask_login import UserMixin

from .api_client import ApiClient

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"

ROLE_ADMIN = "admin"
ROLE_SALES_MANAGER = "sales_manager"
ROLES = {
    ROLE_ADMIN: "Admin",
    ROLE_SALES_MANAGER: "Sales Manager",
}


def normalize_role(role: str | None) -> str:
    """'Sales-Manager' / 'sales manager' -> 'sales_manager'."""
    return (role or "").strip().lower().replace("-", "_").replace(" ", "_")


# =========================================================
# Types
# =========================================================
@dataclass(eq=False)
class SessionUser(UserMixin):
    id: str
    username: str
    email: str
    role: str

    @classmethod
    def from_dict(cls, data: Any) -> "SessionUser | None":
        if not isinstance(data, Mapping):
            return None
        user_id = data.get("id") or data.get("_id")
        role = normalize_role(data.get("role"))
        if not user_id or not role:
            return None
        email = (data.get("email") or "").strip()
        username = (data.get("username") or data.get("name") or "").strip() or email.split("@")[0]
        return cls(id=str(user_id), username=username, email=email, role=role)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "username": self.username, "email": self.email, "role": self.role}

    def get_id(self) -> str:
        return self.id

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def role_label(self) -> str:
        return ROLES.get(self.role, self.role.replace("_", " ").title())


@dataclass(frozen=True)
class LoginResult:
    success: bool
    user: SessionUser | None = None
    message: str | None = None


# =========================================================
# Store
# =========================================================
class SessionStore:
    def __init__(self, storage: MutableMapping[str, Any]) -> None:
        self._storage = storage

    @property
    def token(self) -> str | None:
        token = self._storage.get(TOKEN_KEY)
        if isinstance(token, str) and token.strip():
            return token
        return None

    @property
    def current_user(self) -> SessionUser | None:
        raw = self._storage.get(USER_KEY)
        if not raw:
            return None
        try:
            data = json.loads(raw) if isinstance(raw, str) else raw
        except ValueError:
            logger.warning("Discarding unreadable user snapshot")
            return None
        return SessionUser.from_dict(data)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.current_user is not None

    def save(self, token: str, user: SessionUser) -> None:
        self._storage[TOKEN_KEY] = token
        self._storage[USER_KEY] = json.dumps(user.to_dict())

    def logout(self) -> None:
        self._storage.pop(TOKEN_KEY, None)
        self._storage.pop(USER_KEY, None)

    def login(self, client: ApiClient, credentials: Mapping[str, Any]) -> LoginResult:
        """
        Authenticate against the API and persist the session.
        Identity and role always come from the API (login body, or /auth/me).
        """
        email = (credentials.get("email") or "").strip().lower()
        password = credentials.get("password") or ""
        if not email or not password.strip():
            return LoginResult(False, message="Please enter both email and password")

        result = client.login({"email": email, "password": password})
        if result.auth_expired:
            return LoginResult(False, message=result.message_or("Invalid email or password"))
        if not result.ok:
            return LoginResult(False, message=result.message_or("Login failed. Please try again."))

        data = result.data if isinstance(result.data, Mapping) else {}
        token = data.get("token")
        if not isinstance(token, str) or not token.strip():
            logger.warning("Login response carried no token")
            return LoginResult(False, message="Login failed. Please try again.")

        user_data = data.get("user")
        if not user_data:
            me = client.with_token(token).me()
            if not me.ok:
                return LoginResult(False, message=me.message_or("Login failed. Please try again."))
            body = me.data if isinstance(me.data, Mapping) else {}
            user_data = body.get("user", body)

        user = SessionUser.from_dict(user_data)
        if user is None:
            logger.warning("Login response carried no usable user profile")
            return LoginResult(False, message="Login failed. Please try again.")
        if user.role not in ROLES:
            return LoginResult(False, message="This account has no access to the sales console.")

        self.save(token, user)
        return LoginResult(True, user=user)
