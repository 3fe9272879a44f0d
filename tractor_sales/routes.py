# tractor_sales/routes.py
from __future__ import annotations

from typing import Any, Mapping

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required

from .auth import session_expired
from .extensions import get_api_client, get_session_store
from .services.charts import build_charts
from .services.dashboards import (
    LOAD_FAILED_MESSAGE,
    extract_sales,
    load_admin_dashboard,
    load_sales_manager_dashboard,
)
from .services.sale_forms import (
    FAILURE_MESSAGES,
    SALE_KINDS,
    SUCCESS_MESSAGES,
    SaleForm,
    available_vehicles,
    compute_total,
    record_id,
    submit_sale,
)
from .services.session_store import ROLE_SALES_MANAGER
from .utils.guards import (
    admin_required,
    current_role,
    dashboard_endpoint_for,
    role_required,
    staff_required,
)

main = Blueprint("main", __name__)

SALE_TEMPLATES = {
    "normal": "sales/normal_form.html",
    "exchange": "sales/exchange_form.html",
}


# ======================
# Helpers
# ======================
def _fetch_workers() -> int:
    return int(current_app.config.get("DASHBOARD_FETCH_WORKERS", 4))


def _parse_int(val):
    try:
        if val is None or str(val).strip() == "":
            return None
        return int(val)
    except (TypeError, ValueError):
        return None


def _dig(data: Any, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if not isinstance(data, Mapping):
            return default
        data = data.get(key)
    return default if data is None else data


# ======================
# Home
# ======================
@main.route("/")
def home():
    return redirect(url_for("main.dashboard"))


# =========================================================
# Dashboard Router (ROLE-SAFE LANDING)
# =========================================================
@main.route("/dashboard")
@login_required
def dashboard():
    """
    Role-safe landing endpoint: every console role gets its own dashboard.
    A snapshot with a role we cannot serve ends the session.
    """
    endpoint = dashboard_endpoint_for(current_role())
    if endpoint is None:
        get_session_store().logout()
        flash("Your account has no access to the sales console.", "danger")
        return redirect(url_for("auth.login"))
    return redirect(url_for(endpoint))


# =========================================================
# Admin Dashboard (ADMIN ONLY)
# =========================================================
@main.route("/dashboard/admin")
@admin_required
def admin_dashboard():
    load = load_admin_dashboard(get_api_client(), max_workers=_fetch_workers())
    if load.auth_expired:
        return session_expired()
    if load.failed:
        flash(LOAD_FAILED_MESSAGE, "danger")

    analytics = load.data["analytics"]
    alerts = load.data["alerts"]
    stats = {
        "revenue": _dig(analytics, "sales", "revenue", default=0),
        "total_sales": _dig(analytics, "sales", "total", default=0),
        "available_vehicles": _dig(analytics, "inventory", "newVehicles", default=0),
        "payment_alerts": len(alerts),
    }

    return render_template(
        "dashboard/admin.html",
        analytics=analytics,
        alerts=alerts,
        stats=stats,
        charts=build_charts(analytics),
    )


# =========================================================
# Sales Manager Dashboard
# =========================================================
@main.route("/dashboard/sales-manager")
@role_required(ROLE_SALES_MANAGER)
def sales_manager_dashboard():
    load = load_sales_manager_dashboard(get_api_client(), max_workers=_fetch_workers())
    if load.auth_expired:
        return session_expired()
    if load.failed:
        flash(LOAD_FAILED_MESSAGE, "danger")

    return render_template(
        "dashboard/sales_manager.html",
        sales=load.data["sales"],
        alerts=load.data["alerts"],
        alert_preview=load.data["alert_preview"],
        sales_total=load.data["sales_total"],
        username=getattr(current_user, "username", ""),
    )


# ======================
# Sales list / detail
# ======================
@main.route("/sales")
@staff_required
def sales_list():
    page = max(request.args.get("page", 1, type=int) or 1, 1)
    limit = request.args.get("limit", current_app.config.get("SALES_PAGE_SIZE", 20), type=int) or 20
    limit = min(max(limit, 1), 100)

    result = get_api_client().list_sales(page=page, limit=limit)
    if result.auth_expired:
        return session_expired()

    sales: list = []
    total_pages = None
    if result.ok:
        sales = extract_sales(result.data)
        total_pages = _parse_int(_dig(result.data, "totalPages")) or _parse_int(
            _dig(result.data, "pagination", "pages")
        )
    else:
        flash(result.message_or("Failed to load sales"), "danger")

    has_next = page < total_pages if total_pages else len(sales) == limit
    return render_template(
        "sales/list.html",
        sales=sales,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next=has_next,
        has_prev=page > 1,
    )


@main.route("/sales/<sale_id>")
@staff_required
def sale_detail(sale_id):
    result = get_api_client().get_sale(sale_id)
    if result.auth_expired:
        return session_expired()
    if not result.ok:
        if result.status == 404:
            flash("Sale not found.", "danger")
        else:
            flash(result.message_or("Failed to load sale"), "danger")
        return redirect(url_for("main.sales_list"))

    sale = _dig(result.data, "sale", default=result.data)
    return render_template("sales/detail.html", sale=sale)


# ======================
# Sale forms (normal / exchange)
# ======================
def _render_sale_form(client, form: SaleForm, status: int = 200):
    result = client.list_new_vehicles()
    if result.auth_expired:
        return session_expired()
    if result.ok:
        vehicles = available_vehicles(result.data)
    else:
        vehicles = []
        flash("Failed to load vehicles", "danger")

    return (
        render_template(
            SALE_TEMPLATES[form.kind],
            form=form,
            vehicles=vehicles,
            selected_vehicle=form.selected_vehicle(vehicles),
            locations=current_app.config.get("SALES_LOCATIONS", []),
            record_id=record_id,
        ),
        status,
    )


def _sale_form_view(kind: str):
    client = get_api_client()

    if request.method == "GET":
        return _render_sale_form(client, SaleForm(kind, {"hasLoan": "false", "mas": "false"}))

    form = SaleForm(kind, request.form.to_dict())
    if not form.validate():
        flash("Please correct the highlighted fields.", "danger")
        return _render_sale_form(client, form, 400)

    result = submit_sale(client, form)
    if result.auth_expired:
        return session_expired()
    if not result.ok:
        current_app.logger.warning("Create %s sale failed (status=%s)", kind, result.status)
        flash(result.message_or(FAILURE_MESSAGES[kind]), "danger")
        return _render_sale_form(client, form)

    flash(SUCCESS_MESSAGES[kind], "success")
    return redirect(url_for("main.dashboard"))


@main.route("/sales/normal/new", methods=["GET", "POST"])
@staff_required
def new_normal_sale():
    return _sale_form_view("normal")


@main.route("/sales/exchange/new", methods=["GET", "POST"])
@staff_required
def new_exchange_sale():
    return _sale_form_view("exchange")


@main.route("/sales/<kind>/total", methods=["POST"])
@staff_required
def sale_total_preview(kind):
    """Derived total for the posted (possibly incomplete) form."""
    if kind not in SALE_KINDS:
        abort(404)
    state = request.get_json(silent=True)
    if not isinstance(state, Mapping):
        state = request.form.to_dict()
    return jsonify({"totalAmount": compute_total(kind, state)})


# ======================
# Notifications
# ======================
@main.route("/notifications")
@staff_required
def notifications():
    result = get_api_client().list_notifications()
    if result.auth_expired:
        return session_expired()

    items: list = []
    unread = 0
    if result.ok:
        data = result.data
        items = data if isinstance(data, list) else _dig(data, "notifications", default=[])
        if not isinstance(items, list):
            items = []
        unread = _parse_int(_dig(data, "unreadCount"))
        if unread is None:
            unread = sum(1 for n in items if isinstance(n, Mapping) and not n.get("isRead"))
    else:
        flash(result.message_or("Failed to load notifications"), "danger")

    return render_template("notifications/list.html", notifications=items, unread=unread, record_id=record_id)


@main.route("/notifications/<notification_id>/read", methods=["POST"])
@staff_required
def mark_notification_read(notification_id):
    result = get_api_client().mark_notification_read(notification_id)
    if result.auth_expired:
        return session_expired()
    if not result.ok:
        flash(result.message_or("Failed to update notification"), "danger")
    return redirect(url_for("main.notifications"))


@main.route("/notifications/mark-all-read", methods=["POST"])
@staff_required
def mark_all_notifications_read():
    result = get_api_client().mark_all_notifications_read()
    if result.auth_expired:
        return session_expired()
    if result.ok:
        flash("All notifications marked as read.", "success")
    else:
        flash(result.message_or("Failed to update notifications"), "danger")
    return redirect(url_for("main.notifications"))
