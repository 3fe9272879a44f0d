# tractor_sales/utils/guards.py

from __future__ import annotations

from functools import wraps
from typing import Callable, Any

from flask import flash, redirect, url_for
from flask_login import login_required, current_user

from tractor_sales.services.session_store import ROLE_ADMIN, ROLE_SALES_MANAGER, normalize_role


# Root dashboard per role
DASHBOARD_ENDPOINTS = {
    ROLE_ADMIN: "main.admin_dashboard",
    ROLE_SALES_MANAGER: "main.sales_manager_dashboard",
}


def current_role() -> str:
    return normalize_role(getattr(current_user, "role", None))


def dashboard_endpoint_for(role: str | None) -> str | None:
    return DASHBOARD_ENDPOINTS.get(normalize_role(role))


def role_required(*allowed_roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Generic role gate:
        @role_required("admin", "sales_manager")
        def view(): ...

    A signed-in user with the wrong role is sent back to their own
    dashboard, never to an error page.
    """
    allowed = {normalize_role(r) for r in allowed_roles}

    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if current_role() not in allowed:
                flash("Access denied.", "danger")
                return redirect(url_for("main.dashboard"))
            return view(*args, **kwargs)

        return wrapped

    return decorator


def admin_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """Allow only admin."""
    return role_required(ROLE_ADMIN)(view)


def staff_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """Any console role (admin or sales manager)."""
    return role_required(ROLE_ADMIN, ROLE_SALES_MANAGER)(view)
