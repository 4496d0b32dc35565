"""
Authentication Context
======================

Process-wide owner of the session and login-attempt state.

Build one at process start, pass it (or its ``sessions`` manager) to the
components that need the current identity, and close it at exit.

Usage:
    config = CentralTruckConfig.load()
    async with AuthContext.create(config) as auth:
        await auth.sessions.login("joao", "senha123")
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from centraltruck.core.auth.attempts import AttemptTracker
from centraltruck.core.auth.hasher import CredentialHasher
from centraltruck.core.auth.session_control import SessionManager
from centraltruck.core.config import CentralTruckConfig
from centraltruck.db.local_store import LocalKeyValueStore

if TYPE_CHECKING:
    from centraltruck.db.gateway import CredentialStoreGateway


class AuthContext:
    """Bundle of the auth core components with an explicit lifecycle."""

    def __init__(
        self,
        config: CentralTruckConfig,
        store: LocalKeyValueStore,
        gateway: CredentialStoreGateway,
        hasher: Optional[CredentialHasher] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        security = config.security
        self.config = config
        self.store = store
        self.gateway = gateway
        self.hasher = hasher or CredentialHasher(
            iterations=security.kdf_iterations,
            hash_length=security.hash_length,
            salt_length=security.salt_length,
        )
        self.attempts = AttemptTracker.from_config(store, security, clock=clock)
        self.sessions = SessionManager(
            store,
            gateway,
            self.hasher,
            self.attempts,
            security=security,
            clock=clock,
            sleep=sleep,
        )
        self._opened = False
        self._log = logging.getLogger("centraltruck.auth")

    @classmethod
    def create(
        cls,
        config: Optional[CentralTruckConfig] = None,
        gateway: Optional[CredentialStoreGateway] = None,
    ) -> "AuthContext":
        """
        Build a context from configuration.

        Without an explicit gateway the Firestore store named in
        ``config.store`` is used.
        """
        config = config or CentralTruckConfig.get_instance()
        if gateway is None:
            from centraltruck.db.firestore_store import FirestoreCredentialStore
            gateway = FirestoreCredentialStore.from_config(config.store)
        store = LocalKeyValueStore(config.paths.local_store_path)
        return cls(config, store, gateway)

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> None:
        """Restore the persisted session and arm its expiry timer."""
        if self._opened:
            return
        self.sessions.start()
        self._opened = True
        self._log.debug("Auth context opened (store=%r)", self.store)

    async def close(self) -> None:
        """
        Cancel the expiry timer and release the store client.

        The gateway is closed even if the context was never opened.
        """
        self.sessions.close()
        await self.gateway.close()
        if self._opened:
            self._opened = False
            self._log.debug("Auth context closed")

    async def __aenter__(self) -> "AuthContext":
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
