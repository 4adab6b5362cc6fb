"""Round-robin rotation over the upstream API key pool."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcpgate.core.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable


class ApiKeyPool:
    """Hands out upstream API keys in round-robin order.

    One key is drawn per top-level request; every round of that request
    reuses it.
    """

    def __init__(self, keys: Iterable[str]) -> None:
        self._keys = [k for k in keys if k]
        self._index = 0

    def next_key(self) -> str:
        """Return the next key in rotation.

        Raises:
            ConfigError: If the pool is empty.
        """
        if not self._keys:
            msg = "No upstream API keys configured"
            raise ConfigError(msg)
        key = self._keys[self._index % len(self._keys)]
        self._index = (self._index + 1) % len(self._keys)
        return key

    def __len__(self) -> int:
        return len(self._keys)
