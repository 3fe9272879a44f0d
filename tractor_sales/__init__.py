# tractor_sales/__init__.py
from __future__ import annotations

from typing import Any, Mapping

from flask import Flask, redirect, render_template, url_for
from flask_login import current_user

from .settings import Config
from .extensions import login_manager, limiter


def create_app(overrides: Mapping[str, Any] | None = None, *, api_http: Any = None) -> Flask:
    """
    overrides: extra config (tests, scripts).
    api_http:  transport handed to every ApiClient (defaults to `requests`).
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    if api_http is not None:
        app.extensions["tractor_api_http"] = api_http

    # ======================
    # Initialize Extensions
    # ======================
    login_manager.init_app(app)
    limiter.init_app(app)

    # ======================
    # Global template context (Dealership identity)
    # ======================
    from .config.dealership import alert_class, dealership_context, format_money

    @app.context_processor
    def inject_dealership():
        return dealership_context()

    app.jinja_env.filters["money"] = format_money
    app.jinja_env.filters["alert_class"] = alert_class

    # ======================
    # Register Blueprints
    # ======================
    from .routes import main
    from .auth import auth
    from .inventory import inventory_bp

    app.register_blueprint(main)
    app.register_blueprint(auth)
    app.register_blueprint(inventory_bp)

    # ======================
    # Rate limit error handler
    # ======================
    @app.errorhandler(429)
    def ratelimit_handler(e):
        return "Too many requests. Please try again later.", 429

    # ======================
    # Forbidden handler
    # ======================
    @app.errorhandler(403)
    def forbidden(e):
        return render_template("errors/403.html"), 403

    # ======================
    # Not found: unknown paths fall back to the dashboard (or login)
    # ======================
    @app.errorhandler(404)
    def not_found(e):
        if getattr(current_user, "is_authenticated", False):
            return redirect(url_for("main.dashboard"))
        return redirect(url_for("auth.login"))

    return app
