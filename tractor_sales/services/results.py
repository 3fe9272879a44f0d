# tractor_sales/services/results.py
"""
Outcome types returned by the API client.

Every call resolves to exactly one of:
- Ok(data)              2xx response, parsed JSON body (or None)
- AuthExpired()         401 response; the caller must tear the session down
- ApiError(status, msg) anything else, including transport failures (status=None)

Callers branch on `.ok` / `.auth_expired` instead of catching exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class Ok:
    data: Any = None
    status: int = 200

    ok: ClassVar[bool] = True
    auth_expired: ClassVar[bool] = False

    def message_or(self, default: str) -> str:
        return default


@dataclass(frozen=True)
class AuthExpired:
    message: str | None = None
    status: int = 401

    ok: ClassVar[bool] = False
    auth_expired: ClassVar[bool] = True

    @property
    def data(self) -> None:
        return None

    def message_or(self, default: str) -> str:
        return self.message or default


@dataclass(frozen=True)
class ApiError:
    status: int | None = None
    message: str | None = None

    ok: ClassVar[bool] = False
    auth_expired: ClassVar[bool] = False

    @property
    def data(self) -> None:
        return None

    def message_or(self, default: str) -> str:
        """Server-provided message verbatim when present, else `default`."""
        return self.message or default


Result = Union[Ok, AuthExpired, ApiError]
