# tractor_sales/services/sale_forms.py
"""
Sale form engines (normal sale, exchange/trade-in sale).

Form state is a flat mapping of field name -> raw posted value, using dotted
names for nested parts ("customer.name", "usedVehicleDetails.priceTaken").
Everything here is pure: derive the total, validate against a declarative
rule table, and package the API payload.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping

from .api_client import ApiClient
from .results import Result

NORMAL = "normal"
EXCHANGE = "exchange"
SALE_KINDS = (NORMAL, EXCHANGE)

PRICE_TAKEN = "usedVehicleDetails.priceTaken"
ADDRESS_PARTS = ("flatNo", "street", "district", "city", "state")

SUCCESS_MESSAGES = {
    NORMAL: "Sale recorded successfully!",
    EXCHANGE: "Exchange sale recorded successfully!",
}
FAILURE_MESSAGES = {
    NORMAL: "Failed to record sale",
    EXCHANGE: "Failed to record exchange sale",
}


# ======================
# Parsers
# ======================
def to_number(val) -> float | None:
    try:
        if val is None or str(val).strip() == "":
            return None
        n = float(val)
    except (TypeError, ValueError):
        return None
    # "nan" and "inf" parse as floats but are not amounts
    return n if math.isfinite(n) else None


def number_or_zero(val) -> float:
    n = to_number(val)
    return 0.0 if n is None else n


def is_true(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in ("true", "yes", "on", "1")


def parse_delivery_date(val) -> date | None:
    try:
        if not val:
            return None
        return date.fromisoformat(str(val).strip()[:10])
    except (TypeError, ValueError):
        return None


def to_iso_instant(val) -> str | None:
    """'2024-05-01' -> '2024-05-01T00:00:00.000Z' (midnight UTC)."""
    d = parse_delivery_date(val)
    if d is None:
        return None
    instant = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text(val) -> str:
    return (str(val) if val is not None else "").strip()


def has_loan(state: Mapping[str, Any]) -> bool:
    return is_true(state.get("hasLoan"))


# ======================
# Derived total
# ======================
def normal_total(state: Mapping[str, Any]) -> float:
    loan = number_or_zero(state.get("loanAmount")) if has_loan(state) else 0.0
    return loan + number_or_zero(state.get("docCharge")) + number_or_zero(state.get("downPayment"))


def exchange_total(state: Mapping[str, Any]) -> float:
    # Trade-in credit never makes the payable amount negative
    return max(0.0, normal_total(state) - number_or_zero(state.get(PRICE_TAKEN)))


TOTALS: dict[str, Callable[[Mapping[str, Any]], float]] = {
    NORMAL: normal_total,
    EXCHANGE: exchange_total,
}


def compute_total(kind: str, state: Mapping[str, Any]) -> float:
    return TOTALS[kind](state)


# ======================
# Rule table
# ======================
def _always(_state: Mapping[str, Any]) -> bool:
    return True


def _never(_state: Mapping[str, Any]) -> bool:
    return False


@dataclass(frozen=True)
class FieldRule:
    field: str
    label: str
    required: Callable[[Mapping[str, Any]], bool] = _always
    numeric: bool = False
    minimum: float | None = None
    # Field is ignored entirely when this is False (hidden loan fields)
    active: Callable[[Mapping[str, Any]], bool] = _always

    def message(self) -> str:
        return f"{self.label} is required"


NORMAL_RULES: tuple[FieldRule, ...] = (
    FieldRule("location", "Location"),
    FieldRule("deliveryDate", "Delivery date"),
    FieldRule("salesman", "Salesman name"),
    FieldRule("customer.name", "Customer name"),
    FieldRule("customer.phone", "Phone number"),
    FieldRule("vehicle", "Vehicle selection"),
    FieldRule("c2cPrice", "C2C price", numeric=True, minimum=0),
    FieldRule("discount", "Discount", required=_never, numeric=True, minimum=0),
    FieldRule("downPayment", "Down payment", numeric=True, minimum=0),
    FieldRule("financeCompany", "Finance company", required=has_loan, active=has_loan),
    FieldRule("loanAmount", "Loan amount", required=has_loan, numeric=True, minimum=0, active=has_loan),
    FieldRule("docCharge", "Document charge", required=_never, numeric=True, minimum=0),
)

EXCHANGE_RULES: tuple[FieldRule, ...] = NORMAL_RULES + (
    FieldRule("usedVehicleDetails.make", "Vehicle make"),
    FieldRule("usedVehicleDetails.model", "Vehicle model"),
    FieldRule("usedVehicleDetails.customerName", "Previous owner name"),
    FieldRule("usedVehicleDetails.customerPhone", "Previous owner phone"),
    FieldRule(PRICE_TAKEN, "Trade-in price", numeric=True, minimum=0),
)

RULES: dict[str, tuple[FieldRule, ...]] = {
    NORMAL: NORMAL_RULES,
    EXCHANGE: EXCHANGE_RULES,
}


def required_rules(kind: str) -> dict[str, Callable[[Mapping[str, Any]], bool]]:
    """{field: (form_state) -> is_required} for one form kind."""
    return {rule.field: rule.required for rule in RULES[kind]}


def required_fields(kind: str, state: Mapping[str, Any]) -> set[str]:
    return {field for field, is_required in required_rules(kind).items() if is_required(state)}


def validate(kind: str, state: Mapping[str, Any]) -> dict[str, str]:
    """Returns {field: message}; empty means the form may be submitted."""
    errors: dict[str, str] = {}
    for rule in RULES[kind]:
        if not rule.active(state):
            continue

        raw = state.get(rule.field)
        if _text(raw) == "":
            if rule.required(state):
                errors[rule.field] = rule.message()
            continue

        if rule.numeric:
            n = to_number(raw)
            if n is None:
                errors[rule.field] = f"{rule.label} must be a number"
            elif rule.minimum is not None and n < rule.minimum:
                errors[rule.field] = f"{rule.label} cannot be less than {rule.minimum:g}"

    if "deliveryDate" not in errors and parse_delivery_date(state.get("deliveryDate")) is None:
        errors["deliveryDate"] = "Delivery date is invalid"

    return errors


# ======================
# Payload
# ======================
def _address(state: Mapping[str, Any], prefix: str) -> dict[str, str]:
    return {part: _text(state.get(f"{prefix}.{part}")) for part in ADDRESS_PARTS}


def build_payload(kind: str, state: Mapping[str, Any]) -> dict[str, Any]:
    loan = has_loan(state)
    payload: dict[str, Any] = {
        "location": _text(state.get("location")),
        "deliveryDate": to_iso_instant(state.get("deliveryDate")),
        "salesman": _text(state.get("salesman")),
        "customer": {
            "name": _text(state.get("customer.name")),
            "phone": _text(state.get("customer.phone")),
            "address": _address(state, "customer.address"),
        },
        "vehicle": _text(state.get("vehicle")),
        "c2cPrice": to_number(state.get("c2cPrice")),
        "discount": number_or_zero(state.get("discount")),
        "downPayment": to_number(state.get("downPayment")),
        "hasLoan": loan,
        "loanAmount": number_or_zero(state.get("loanAmount")) if loan else 0,
        "mas": is_true(state.get("mas")),
        "docCharge": number_or_zero(state.get("docCharge")),
        "totalAmount": compute_total(kind, state),
    }
    if loan:
        payload["financeCompany"] = _text(state.get("financeCompany"))

    if kind == EXCHANGE:
        payload["usedVehicleDetails"] = {
            "make": _text(state.get("usedVehicleDetails.make")),
            "model": _text(state.get("usedVehicleDetails.model")),
            "customerName": _text(state.get("usedVehicleDetails.customerName")),
            "customerPhone": _text(state.get("usedVehicleDetails.customerPhone")),
            "customerAddress": _address(state, "usedVehicleDetails.customerAddress"),
            "priceTaken": to_number(state.get(PRICE_TAKEN)),
        }
    return payload


# ======================
# Vehicles offered for sale
# ======================
def record_id(record: Mapping[str, Any] | None) -> str:
    if not record:
        return ""
    return str(record.get("id") or record.get("_id") or "")


def available_vehicles(vehicles: Any) -> list[dict]:
    if not isinstance(vehicles, list):
        return []
    return [v for v in vehicles if isinstance(v, Mapping) and v.get("isAvailable")]


# ======================
# Form object (what templates and views use)
# ======================
class SaleForm:
    def __init__(self, kind: str, state: Mapping[str, Any] | None = None) -> None:
        if kind not in RULES:
            raise ValueError(f"Unknown sale kind: {kind!r}")
        self.kind = kind
        # totalAmount is derived; a posted value is never trusted
        self.state = {k: v for k, v in (state or {}).items() if k != "totalAmount"}
        self.errors: dict[str, str] = {}

    @property
    def total(self) -> float:
        return compute_total(self.kind, self.state)

    @property
    def has_loan(self) -> bool:
        return has_loan(self.state)

    def value(self, field: str, default: str = "") -> str:
        val = self.state.get(field)
        return default if val is None else str(val)

    def error(self, field: str) -> str | None:
        return self.errors.get(field)

    def is_required(self, field: str) -> bool:
        rule = required_rules(self.kind).get(field)
        return bool(rule and rule(self.state))

    def validate(self) -> bool:
        self.errors = validate(self.kind, self.state)
        return not self.errors

    def payload(self) -> dict[str, Any]:
        return build_payload(self.kind, self.state)

    def selected_vehicle(self, vehicles: list[dict]) -> dict | None:
        wanted = self.value("vehicle")
        if not wanted:
            return None
        return next((v for v in vehicles if record_id(v) == wanted), None)


def submit_sale(client: ApiClient, form: SaleForm) -> Result:
    """Caller must have validated the form."""
    payload = form.payload()
    if form.kind == EXCHANGE:
        return client.create_exchange_sale(payload)
    return client.create_normal_sale(payload)
