# tractor_sales/inventory.py
from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from .auth import session_expired
from .extensions import get_api_client
from .services.sale_forms import record_id, to_number
from .utils.guards import admin_required, staff_required

inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")

MODEL_MAXLEN = 120


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _clean_str(value: str | None) -> str:
    return (value or "").strip()


def _vehicle_form() -> dict[str, str]:
    return {
        "model": _clean_str(request.form.get("model")),
        "price": _clean_str(request.form.get("price")),
    }


def _validate_vehicle(form: dict[str, str]) -> list[str]:
    errors = []
    if not form["model"]:
        errors.append("Model is required.")
    elif len(form["model"]) > MODEL_MAXLEN:
        errors.append(f"Model too long (max {MODEL_MAXLEN}).")

    price = to_number(form["price"])
    if form["price"] == "":
        errors.append("Price is required.")
    elif price is None:
        errors.append("Price must be a number.")
    elif price < 0:
        errors.append("Price cannot be negative.")
    return errors


def _vehicle_payload(form: dict[str, str]) -> dict:
    return {"model": form["model"], "price": to_number(form["price"])}


def _render_new_vehicles(form: dict[str, str] | None = None, editing: dict | None = None, status: int = 200):
    """Always re-reads the full list from the API."""
    result = get_api_client().list_new_vehicles()
    if result.auth_expired:
        return session_expired()

    vehicles = result.data if result.ok and isinstance(result.data, list) else []
    if not result.ok:
        flash("Failed to load vehicles", "danger")

    return (
        render_template(
            "inventory/new_vehicles.html",
            vehicles=vehicles,
            form=form or {"model": "", "price": ""},
            editing=editing,
            show_form=form is not None,
            record_id=record_id,
        ),
        status,
    )


def _find_vehicle(vehicle_id: str):
    """Returns (vehicle | None, response | None)."""
    result = get_api_client().list_new_vehicles()
    if result.auth_expired:
        return None, session_expired()
    if not result.ok:
        flash("Failed to load vehicles", "danger")
        return None, redirect(url_for("inventory.new_vehicles"))

    vehicles = result.data if isinstance(result.data, list) else []
    vehicle = next((v for v in vehicles if record_id(v) == vehicle_id), None)
    if vehicle is None:
        flash("Vehicle not found.", "danger")
        return None, redirect(url_for("inventory.new_vehicles"))
    return vehicle, None


# -------------------------------------------------------------------
# New vehicles
# GET  /inventory/new-vehicles
# POST /inventory/new-vehicles
# -------------------------------------------------------------------
@inventory_bp.route("/new-vehicles", methods=["GET"])
@admin_required
def new_vehicles():
    show_form = request.args.get("add") == "1"
    return _render_new_vehicles({"model": "", "price": ""} if show_form else None)


@inventory_bp.route("/new-vehicles", methods=["POST"])
@admin_required
def add_vehicle():
    form = _vehicle_form()
    errors = _validate_vehicle(form)
    if errors:
        for e in errors:
            flash(e, "danger")
        return _render_new_vehicles(form, status=400)

    result = get_api_client().add_new_vehicle(_vehicle_payload(form))
    if result.auth_expired:
        return session_expired()
    if not result.ok:
        current_app.logger.warning("Add vehicle failed (status=%s)", result.status)
        flash("Failed to save vehicle", "danger")
        return _render_new_vehicles(form)

    flash("Vehicle added successfully", "success")
    return redirect(url_for("inventory.new_vehicles"))


# -------------------------------------------------------------------
# Edit
# GET+POST /inventory/new-vehicles/<id>/edit
# -------------------------------------------------------------------
@inventory_bp.route("/new-vehicles/<vehicle_id>/edit", methods=["GET", "POST"])
@admin_required
def edit_vehicle(vehicle_id):
    if request.method == "GET":
        vehicle, response = _find_vehicle(vehicle_id)
        if response is not None:
            return response
        price = vehicle.get("price")
        form = {"model": str(vehicle.get("model") or ""), "price": "" if price is None else str(price)}
        return _render_new_vehicles(form, editing=vehicle)

    form = _vehicle_form()
    editing = {"id": vehicle_id, **form}
    errors = _validate_vehicle(form)
    if errors:
        for e in errors:
            flash(e, "danger")
        return _render_new_vehicles(form, editing=editing, status=400)

    result = get_api_client().update_new_vehicle(vehicle_id, _vehicle_payload(form))
    if result.auth_expired:
        return session_expired()
    if not result.ok:
        current_app.logger.warning("Update vehicle %s failed (status=%s)", vehicle_id, result.status)
        flash("Failed to save vehicle", "danger")
        return _render_new_vehicles(form, editing=editing)

    flash("Vehicle updated successfully", "success")
    return redirect(url_for("inventory.new_vehicles"))


# -------------------------------------------------------------------
# Delete (explicit confirmation required)
# GET  /inventory/new-vehicles/<id>/delete   -> confirmation page
# POST /inventory/new-vehicles/<id>/delete   -> only with confirm=yes
# -------------------------------------------------------------------
@inventory_bp.route("/new-vehicles/<vehicle_id>/delete", methods=["GET", "POST"])
@admin_required
def delete_vehicle(vehicle_id):
    if request.method == "GET":
        vehicle, response = _find_vehicle(vehicle_id)
        if response is not None:
            return response
        return render_template("inventory/confirm_delete.html", vehicle=vehicle, vehicle_id=vehicle_id)

    if (request.form.get("confirm") or "").strip().lower() != "yes":
        flash("Delete cancelled.", "info")
        return redirect(url_for("inventory.new_vehicles"))

    result = get_api_client().delete_new_vehicle(vehicle_id)
    if result.auth_expired:
        return session_expired()
    if result.ok:
        flash("Vehicle deleted successfully", "success")
    else:
        current_app.logger.warning("Delete vehicle %s failed (status=%s)", vehicle_id, result.status)
        flash("Failed to delete vehicle", "danger")
    return redirect(url_for("inventory.new_vehicles"))


# -------------------------------------------------------------------
# Used vehicles (read-only, created by exchange sales)
# -------------------------------------------------------------------
@inventory_bp.route("/used-vehicles", methods=["GET"])
@staff_required
def used_vehicles():
    result = get_api_client().list_used_vehicles()
    if result.auth_expired:
        return session_expired()

    vehicles = result.data if result.ok and isinstance(result.data, list) else []
    if not result.ok:
        flash("Failed to load used vehicles", "danger")

    return render_template("inventory/used_vehicles.html", vehicles=vehicles, record_id=record_id)
