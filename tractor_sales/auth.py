# tractor_sales/auth.py
from __future__ import annotations

from urllib.parse import urlparse, urljoin

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user

from .extensions import get_api_client, get_session_store, limiter
from .services.session_store import ROLE_SALES_MANAGER, ROLES, normalize_role

auth = Blueprint("auth", __name__)

PASSWORD_MIN_LENGTH = 6


# =========================================================
# Helpers
# =========================================================
def _is_safe_next(target: str) -> bool:
    """Same-host targets only, and never back into the auth pages."""
    if not target:
        return False

    blocked_prefixes = ("/login", "/logout", "/register")
    if target.startswith(blocked_prefixes):
        return False

    ref = urlparse(request.host_url)
    test = urlparse(urljoin(request.host_url, target))
    return test.scheme in ("http", "https") and ref.netloc == test.netloc


def _next_or_dashboard() -> str:
    nxt = request.args.get("next") or request.form.get("next") or ""
    if nxt and _is_safe_next(nxt):
        return nxt
    return url_for("main.dashboard")


def session_expired():
    """
    The one place that reacts to an expired/invalid token (API 401):
    drop token + user snapshot and send the browser to the login page.
    """
    get_session_store().logout()
    current_app.logger.info("Session ended after API 401")
    flash("Your session has expired. Please sign in again.", "warning")
    return redirect(url_for("auth.login"))


# =========================================================
# Login / Logout
# =========================================================
@auth.route("/login", methods=["GET", "POST"])
@limiter.limit("5 per minute", methods=["POST"])
def login():
    if getattr(current_user, "is_authenticated", False):
        return redirect(url_for("main.dashboard"))

    next_url = request.args.get("next") or request.form.get("next") or ""

    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        password = request.form.get("password") or ""

        result = get_session_store().login(
            get_api_client(token=""),
            {"email": email, "password": password},
        )
        if not result.success:
            flash(result.message or "Invalid email or password", "danger")
            return render_template("auth/login.html", next=next_url, email=email)

        current_app.logger.info("User %s signed in as %s", result.user.email, result.user.role)
        flash("Login successful!", "success")
        return redirect(_next_or_dashboard())

    return render_template("auth/login.html", next=next_url, email="")


@auth.route("/logout")
def logout():
    """
    Not login_required: logging out with an already-dead session must still
    land on the login page.
    """
    get_session_store().logout()
    flash("You have been logged out.", "success")
    return redirect(url_for("auth.login"))


# =========================================================
# Register
# =========================================================
@auth.route("/register", methods=["GET", "POST"])
@limiter.limit("5 per minute", methods=["POST"])
def register():
    if getattr(current_user, "is_authenticated", False):
        return redirect(url_for("main.dashboard"))

    form = {
        "username": (request.form.get("username") or "").strip(),
        "email": (request.form.get("email") or "").strip().lower(),
        "role": normalize_role(request.form.get("role") or ROLE_SALES_MANAGER),
    }

    if request.method == "POST":
        password = request.form.get("password") or ""
        confirm = request.form.get("confirm_password") or ""

        errors: list[str] = []
        if not form["username"] or not form["email"] or not password:
            errors.append("Username, email and password are required.")
        if form["role"] not in ROLES:
            errors.append("Select a valid role.")
        if password and len(password) < PASSWORD_MIN_LENGTH:
            errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
        if password != confirm:
            errors.append("Passwords do not match.")

        if errors:
            for e in errors:
                flash(e, "danger")
            return render_template("auth/register.html", form=form, roles=ROLES)

        result = get_api_client(token="").register({**form, "password": password})
        if not result.ok:
            flash(result.message_or("Registration failed. Please try again."), "danger")
            return render_template("auth/register.html", form=form, roles=ROLES)

        flash("Registration successful. Please sign in.", "success")
        return redirect(url_for("auth.login"))

    return render_template("auth/register.html", form=form, roles=ROLES)
