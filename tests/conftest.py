"""Shared fixtures for the authentication core tests."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import pytest

from centraltruck.core.auth.attempts import AttemptTracker
from centraltruck.core.auth.hasher import CredentialHasher
from centraltruck.core.auth.identity import Collection, Identity, identity_from_document
from centraltruck.core.auth.session_control import SessionManager
from centraltruck.core.config import SecurityConfig
from centraltruck.db.gateway import CredentialStoreGateway
from centraltruck.db.local_store import LocalKeyValueStore


FAST_ITERATIONS = 1_000


class FakeClock:
    """Virtual epoch clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class InMemoryCredentialStore(CredentialStoreGateway):
    """Dictionary-backed gateway recording every call."""

    def __init__(self) -> None:
        self.documents: dict[Collection, dict[str, dict[str, Any]]] = {
            Collection.ADMINS: {},
            Collection.DRIVERS: {},
        }
        self.calls: list[tuple[str, Collection, str]] = []
        self.fail_with: Optional[Exception] = None
        self.closed = False

    def add(self, collection: Collection, doc_id: str, **data: Any) -> None:
        self.documents[collection][doc_id] = dict(data)

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def find_by_normalized_name(self, collection: Collection, name: str) -> Optional[Identity]:
        self.calls.append(("find", collection, name))
        self._maybe_fail()
        for doc_id, data in self.documents[collection].items():
            if data.get("name") == name:
                return identity_from_document(collection, doc_id, data)
        return None

    async def get_by_id(self, collection: Collection, identity_id: str) -> Optional[Identity]:
        self.calls.append(("get", collection, identity_id))
        self._maybe_fail()
        data = self.documents[collection].get(identity_id)
        if data is None:
            return None
        return identity_from_document(collection, identity_id, data)

    async def update(self, collection: Collection, identity_id: str, fields: Mapping[str, Any]) -> None:
        self.calls.append(("update", collection, identity_id))
        self._maybe_fail()
        self.documents[collection][identity_id].update(fields)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(iterations=FAST_ITERATIONS)


@pytest.fixture
def kv_store(tmp_path) -> LocalKeyValueStore:
    return LocalKeyValueStore(tmp_path / "local.db")


@pytest.fixture
def gateway(hasher) -> InMemoryCredentialStore:
    """Store with driver JOAO / senha123, admin MARIA / admin123, legacy driver PEDRO."""
    store = InMemoryCredentialStore()

    salt = hasher.generate_salt()
    store.add(
        Collection.DRIVERS, "drv-joao",
        name="JOAO", salt=salt, passwordHash=hasher.hash("senha123", salt),
    )

    salt = hasher.generate_salt()
    store.add(
        Collection.ADMINS, "adm-maria",
        name="MARIA", salt=salt, passwordHash=hasher.hash("admin123", salt),
    )

    store.add(Collection.DRIVERS, "drv-pedro", name="PEDRO")
    return store


@pytest.fixture
def tracker(kv_store, clock) -> AttemptTracker:
    return AttemptTracker(kv_store, clock=clock)


@pytest.fixture
def make_manager(kv_store, gateway, hasher, clock):
    """Build a SessionManager over the shared store, as a fresh process would."""

    def _make(security: Optional[SecurityConfig] = None) -> SessionManager:
        security = security or SecurityConfig()
        attempts = AttemptTracker.from_config(kv_store, security, clock=clock)
        manager = SessionManager(
            kv_store, gateway, hasher, attempts,
            security=security, clock=clock, sleep=clock.sleep,
        )
        manager.start()
        return manager

    return _make


@pytest.fixture
def manager(make_manager) -> SessionManager:
    return make_manager()


def run(coro):
    return asyncio.run(coro)

