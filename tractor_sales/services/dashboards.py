# tractor_sales/services/dashboards.py
from __future__ import annotations

import copy
import logging
from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from .api_client import ApiClient
from .results import ApiError, Result

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load dashboard data"
RECENT_SALES_LIMIT = 10
ALERT_PREVIEW_LIMIT = 5


# =========================================================
# Scoped concurrent fetch
# =========================================================
class FetchScope:
    """
    Runs a view's fetches together and waits for all of them to settle.

    Leaving the scope cancels anything still pending and closes it, so a
    response that arrives afterwards is never handed to the view.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="dashboard-fetch")
        self._futures: dict[str, Future] = {}
        self.closed = False

    def submit(self, name: str, fn: Callable[[], Result]) -> None:
        if self.closed:
            raise RuntimeError("FetchScope is closed")
        self._futures[name] = self._executor.submit(fn)

    def gather(self, timeout: float | None = None) -> dict[str, Result]:
        done, _pending = wait(self._futures.values(), timeout=timeout, return_when=ALL_COMPLETED)
        if self.closed:
            return {}

        results: dict[str, Result] = {}
        for name, fut in self._futures.items():
            if fut not in done or fut.cancelled():
                results[name] = ApiError(status=None, message=None)
                continue
            try:
                results[name] = fut.result()
            except Exception:
                logger.exception("Dashboard fetch %r raised", name)
                results[name] = ApiError(status=None, message=None)
        return results

    def close(self) -> None:
        self.closed = True
        for fut in self._futures.values():
            fut.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "FetchScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass
class DashboardLoad:
    data: dict[str, Any] = field(default_factory=dict)
    failed: bool = False
    auth_expired: bool = False


def load_resources(
    fetchers: Mapping[str, Callable[[], Result]],
    defaults: Mapping[str, Any],
    *,
    max_workers: int = 4,
    timeout: float | None = None,
) -> DashboardLoad:
    """
    All-or-nothing: every resource must succeed for its data to be used.
    Any failure yields one failed load with every resource at its default.
    """
    with FetchScope(max_workers=max_workers) as scope:
        for name, fn in fetchers.items():
            scope.submit(name, fn)
        results = scope.gather(timeout=timeout)

    empty = {name: copy.deepcopy(defaults.get(name)) for name in fetchers}

    if any(r.auth_expired for r in results.values()):
        return DashboardLoad(data=empty, auth_expired=True)

    if len(results) != len(fetchers) or not all(r.ok for r in results.values()):
        failed = sorted(name for name, r in results.items() if not r.ok)
        logger.warning("Dashboard load failed (%s)", ", ".join(failed) or "cancelled")
        return DashboardLoad(data=empty, failed=True)

    data = {}
    for name in fetchers:
        value = results[name].data
        data[name] = copy.deepcopy(defaults.get(name)) if value is None else value
    return DashboardLoad(data=data)


# =========================================================
# Payload shaping
# =========================================================
def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def extract_sales(payload: Any) -> list:
    """GET /sales returns {"sales": [...], ...}; tolerate a bare list."""
    if isinstance(payload, Mapping):
        return _as_list(payload.get("sales"))
    return _as_list(payload)


def sales_total(sales: list) -> float:
    total = 0.0
    for sale in sales:
        try:
            total += float((sale or {}).get("totalAmount") or 0)
        except (TypeError, ValueError, AttributeError):
            continue
    return total


# =========================================================
# Role dashboards
# =========================================================
def load_admin_dashboard(client: ApiClient, *, max_workers: int = 4) -> DashboardLoad:
    load = load_resources(
        {
            "analytics": client.get_analytics,
            "alerts": client.get_payment_alerts,
        },
        {"analytics": None, "alerts": []},
        max_workers=max_workers,
    )
    load.data["alerts"] = _as_list(load.data.get("alerts"))
    if not isinstance(load.data.get("analytics"), Mapping):
        load.data["analytics"] = None
    return load


def load_sales_manager_dashboard(client: ApiClient, *, max_workers: int = 4) -> DashboardLoad:
    load = load_resources(
        {
            "sales": lambda: client.list_sales(limit=RECENT_SALES_LIMIT),
            "alerts": client.get_payment_alerts,
        },
        {"sales": [], "alerts": []},
        max_workers=max_workers,
    )
    load.data["sales"] = extract_sales(load.data.get("sales"))
    load.data["alerts"] = _as_list(load.data.get("alerts"))
    load.data["sales_total"] = sales_total(load.data["sales"])
    load.data["alert_preview"] = load.data["alerts"][:ALERT_PREVIEW_LIMIT]
    return load
