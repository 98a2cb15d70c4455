from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of the bearer credentials."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    json: Any = None
    params: Optional[Mapping[str, Any]] = None
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    body: Any

    @property
    def data(self) -> Any:
        """`data` member of the response envelope, or the body itself when flat."""
        if isinstance(self.body, dict) and "data" in self.body:
            return self.body["data"]
        return self.body

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.body, dict):
            value = self.body.get("message")
            return str(value) if value is not None else None
        return None
