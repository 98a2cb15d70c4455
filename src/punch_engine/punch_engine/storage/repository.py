from __future__ import annotations

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """Durable local storage: string keys, string values (JSON for structured data)."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = "") -> list[str]:
        """Keys starting with `prefix`, sorted."""
        raise NotImplementedError
