from __future__ import annotations

from flask import current_app, g, session
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager

from tractor_sales.services.api_client import ApiClient
from tractor_sales.services.session_store import SessionStore

# ======================
# Login Manager
# ======================
# No user table here: the signed session cookie carries the API token and a
# user snapshot, and every request rebuilds the user from it.
login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Please sign in to continue."
login_manager.login_message_category = "info"


@login_manager.request_loader
def load_user_from_session(_request):
    store = get_session_store()
    if not store.is_authenticated:
        return None
    return store.current_user


# ======================
# Rate Limiter
# ======================
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limits by default
)


# ======================
# Request-scoped collaborators
# ======================
def get_session_store() -> SessionStore:
    """One store per request over the Flask session."""
    if "session_store" not in g:
        g.session_store = SessionStore(session)
    return g.session_store


def get_api_client(token: str | None = None) -> ApiClient:
    """API client bound to the current session token (or an explicit one)."""
    cfg = current_app.config
    return ApiClient(
        cfg["API_BASE_URL"],
        token if token is not None else get_session_store().token,
        timeout=cfg.get("API_TIMEOUT", 10),
        http=current_app.extensions.get("tractor_api_http"),
    )
