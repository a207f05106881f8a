"""
In-process view of the settings table.

The install secret is read (or generated) once when the cache is loaded
and never changes for the life of the process; rotating it takes effect
on the next start. Other settings are held as a snapshot that is
reloaded whenever a component writes to the settings table.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from typing import Protocol

from staffauth.domain.entities import SETTING_INSTALL_SECRET

logger = logging.getLogger(__name__)


class SettingsStorePort(Protocol):
    def get_all(self) -> dict[str, str]: ...
    def get_or_create(self, key: str, factory: Callable[[], str]) -> str: ...


def generate_install_secret() -> str:
    return secrets.token_hex(32)


class SettingsCache:
    def __init__(self, install_secret: str, snapshot: dict[str, str], store: SettingsStorePort):
        self._install_secret = install_secret
        self._snapshot = dict(snapshot)
        self._store = store

    @classmethod
    def load(cls, store: SettingsStorePort) -> SettingsCache:
        secret = store.get_or_create(SETTING_INSTALL_SECRET, generate_install_secret)
        cache = cls(secret, store.get_all(), store)
        logger.info("Settings loaded (%d keys)", len(cache._snapshot))
        return cache

    @property
    def install_secret(self) -> str:
        return self._install_secret

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._snapshot.get(key, default)

    def invalidate_settings(self) -> None:
        """Reload the snapshot after a settings write."""
        self._snapshot = dict(self._store.get_all())
