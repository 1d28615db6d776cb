"""
ImageHub - Credential rotation
Owns the rotating credential set of the managed-subscription provider.

When the provider reports an exhausted balance the active key is retired and the
next one becomes active. Callers pass the rotator explicitly to the adapter.
"""

from __future__ import annotations
import logging
import threading
from typing import Optional, Sequence

logger = logging.getLogger("[ImageHub]")


def mask_key(key: str) -> str:
    """Loggable form of a credential"""
    if not key:
        return "<none>"
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


class CredentialRotator:
    """Thread-safe active-credential holder"""

    def __init__(self, keys: Sequence[str]):
        self._keys = [k for k in keys if k]
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config=None) -> "CredentialRotator":
        if config is None:
            from ..hub_config import get_config
            config = get_config()
        return cls(config.fal_keys)

    @property
    def active(self) -> Optional[str]:
        """Currently active credential, None when every key is exhausted"""
        with self._lock:
            if self._index >= len(self._keys):
                return None
            return self._keys[self._index]

    @property
    def remaining(self) -> int:
        with self._lock:
            return max(0, len(self._keys) - self._index)

    def rotate(self, failed_key: str = None) -> bool:
        """
        Retire a credential after a balance-exhaustion report

        Args:
            failed_key: The key that failed. When another thread already rotated
                past it, nothing changes and the current key is reported usable.

        Returns:
            True when a fresh credential is now active, False when all are exhausted
        """
        with self._lock:
            if self._index >= len(self._keys):
                return False

            current = self._keys[self._index]
            if failed_key is not None and failed_key != current:
                return True

            self._index += 1
            logger.warning(f"[ImageHub] Credential {mask_key(current)} exhausted, "
                           f"{len(self._keys) - self._index} remaining")
            return self._index < len(self._keys)
