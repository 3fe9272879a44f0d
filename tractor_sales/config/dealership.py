# tractor_sales/config/dealership.py
"""
Single source of truth for dealership identity shown in page headers.

Templates read the DEALER_* keys; the currency symbol is also used by the
`money` template filter.
"""

from __future__ import annotations

# -----------------------------
# Canonical fields
# -----------------------------
DEALER_NAME = "Tractor Sales"
DEALER_TAGLINE = "Sales • Exchange • Finance"

CURRENCY_SYMBOL = "₹"

# Alert badge classes keyed by server alert type
ALERT_CLASSES = {
    "overdue": "alert-overdue",
    "urgent": "alert-urgent",
    "reminder": "alert-reminder",
}
DEFAULT_ALERT_CLASS = "alert-default"


def alert_class(alert_type: str | None) -> str:
    return ALERT_CLASSES.get((alert_type or "").strip().lower(), DEFAULT_ALERT_CLASS)


def format_money(value, symbol: str = CURRENCY_SYMBOL) -> str:
    """
    ₹ with thousands separators; whole amounts drop the decimals.
    Non-numeric values render as-is so a bad server value never breaks a page.
    """
    try:
        if value is None or value == "":
            return f"{symbol}0"
        amount = float(value)
    except (TypeError, ValueError):
        return f"{symbol}{value}"
    if amount.is_integer():
        return f"{symbol}{amount:,.0f}"
    return f"{symbol}{amount:,.2f}"


def dealership_context() -> dict:
    """Template context injected on every render."""
    return {
        "DEALER_NAME": DEALER_NAME,
        "DEALER_TAGLINE": DEALER_TAGLINE,
        "CURRENCY_SYMBOL": CURRENCY_SYMBOL,
    }
