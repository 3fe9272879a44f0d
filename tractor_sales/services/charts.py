# tractor_sales/services/charts.py
"""
Analytics snapshot -> Chart.js configurations.

Pure data shaping; the page hands each config to Chart.js as-is.
"""

from __future__ import annotations

from typing import Any, Mapping

LOCATION_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444"]
# pending, completed, overdue
PAYMENT_STATUS_COLORS = ["#f59e0b", "#10b981", "#ef4444"]

_BASE_OPTIONS = {
    "responsive": True,
    "maintainAspectRatio": False,
    "plugins": {"legend": {"position": "top"}},
}


def _buckets(analytics: Mapping[str, Any] | None, key: str) -> list[Mapping[str, Any]]:
    sales = (analytics or {}).get("sales") or {}
    items = sales.get(key) if isinstance(sales, Mapping) else None
    if not isinstance(items, list):
        return []
    return [i for i in items if isinstance(i, Mapping)]


def _label(item: Mapping[str, Any]) -> str:
    return str(item.get("_id") if item.get("_id") is not None else item.get("id", ""))


def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def location_chart(analytics: Mapping[str, Any] | None) -> dict:
    items = _buckets(analytics, "byLocation")
    return {
        "type": "pie",
        "data": {
            "labels": [_label(i) for i in items],
            "datasets": [
                {
                    "data": [_num(i.get("count")) for i in items],
                    "backgroundColor": LOCATION_COLORS,
                    "borderWidth": 2,
                }
            ],
        },
        "options": _BASE_OPTIONS,
    }


def payment_status_chart(analytics: Mapping[str, Any] | None) -> dict:
    items = _buckets(analytics, "paymentStatus")
    return {
        "type": "bar",
        "data": {
            "labels": [_label(i)[:1].upper() + _label(i)[1:] for i in items],
            "datasets": [
                {
                    "label": "Number of Sales",
                    "data": [_num(i.get("count")) for i in items],
                    "backgroundColor": PAYMENT_STATUS_COLORS,
                }
            ],
        },
        "options": _BASE_OPTIONS,
    }


def sales_trend_chart(analytics: Mapping[str, Any] | None) -> dict:
    items = _buckets(analytics, "byMonth")
    return {
        "type": "line",
        "data": {
            "labels": [_label(i) for i in items],
            "datasets": [
                {
                    "label": "Sales Count",
                    "data": [_num(i.get("count")) for i in items],
                    "borderColor": "#3b82f6",
                    "backgroundColor": "rgba(59, 130, 246, 0.1)",
                    "tension": 0.4,
                },
                {
                    "label": "Revenue (₹)",
                    # thousands, plotted on the right axis
                    "data": [_num(i.get("revenue")) / 1000 for i in items],
                    "borderColor": "#10b981",
                    "backgroundColor": "rgba(16, 185, 129, 0.1)",
                    "tension": 0.4,
                    "yAxisID": "y1",
                },
            ],
        },
        "options": {
            **_BASE_OPTIONS,
            "scales": {
                "y": {
                    "type": "linear",
                    "display": True,
                    "position": "left",
                    "title": {"display": True, "text": "Sales Count"},
                },
                "y1": {
                    "type": "linear",
                    "display": True,
                    "position": "right",
                    "title": {"display": True, "text": "Revenue (K₹)"},
                    "grid": {"drawOnChartArea": False},
                },
            },
        },
    }


def build_charts(analytics: Mapping[str, Any] | None) -> dict[str, dict]:
    if not analytics:
        return {}
    return {
        "location": location_chart(analytics),
        "payment_status": payment_status_chart(analytics),
        "trend": sales_trend_chart(analytics),
    }
