# tractor_sales/config/__init__.py
"""
tractor_sales.config is a PACKAGE.

- Dealership identity lives in: tractor_sales.config.dealership
- App runtime settings live in: tractor_sales.settings
"""

from __future__ import annotations

from .dealership import dealership_context

__all__ = ["dealership_context"]
