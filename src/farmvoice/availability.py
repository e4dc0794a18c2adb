from __future__ import annotations

import time
from typing import Optional


class AvailabilityCache:
    """
    Remembers whether the speech providers are reachable.

    `None` means unknown (never probed, or reset). Values never expire; only
    `reset()` brings the cache back to unknown.
    """

    def __init__(self, initial: Optional[bool] = None):
        self._value: Optional[bool] = initial
        self._checked_at: Optional[float] = time.time() if initial is not None else None

    def get(self) -> Optional[bool]:
        return self._value

    def set(self, value: bool) -> None:
        self._value = bool(value)
        self._checked_at = time.time()

    def reset(self) -> None:
        self._value = None
        self._checked_at = None

    @property
    def is_known(self) -> bool:
        return self._value is not None

    @property
    def checked_at(self) -> Optional[float]:
        """Epoch seconds of the last `set()`, or None while unknown."""
        return self._checked_at
