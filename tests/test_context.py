"""Tests for AuthContext wiring and lifecycle."""

from centraltruck.core.auth.context import AuthContext
from centraltruck.core.auth.identity import Role
from centraltruck.core.config import CentralTruckConfig, PathConfig
from centraltruck.db.local_store import LocalKeyValueStore
from tests.conftest import run


def _config(tmp_path):
    return CentralTruckConfig(
        paths=PathConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs"),
    )


class TestAuthContext:

    def test_login_through_context(self, tmp_path, gateway, hasher, clock):
        config = _config(tmp_path)
        store = LocalKeyValueStore(config.paths.local_store_path)

        async def scenario():
            async with AuthContext(config, store, gateway, hasher=hasher, clock=clock, sleep=clock.sleep) as auth:
                assert auth.is_open
                assert await auth.sessions.login("joao", "senha123")
                assert auth.sessions.current_role is Role.DRIVER
                assert auth.sessions._timer is not None
            return auth

        auth = run(scenario())

        assert not auth.is_open
        assert gateway.closed
        assert auth.sessions._timer is None

    def test_state_restored_by_new_context(self, tmp_path, gateway, hasher, clock):
        config = _config(tmp_path)
        store = LocalKeyValueStore(config.paths.local_store_path)

        async def first():
            async with AuthContext(config, store, gateway, hasher=hasher, clock=clock, sleep=clock.sleep) as auth:
                await auth.sessions.login("maria", "admin123")
                await auth.sessions.login("joao", "wrong")

        async def second():
            async with AuthContext(config, store, gateway, hasher=hasher, clock=clock, sleep=clock.sleep) as auth:
                return auth.sessions.current_role, auth.attempts.failure_count("JOAO")

        run(first())
        assert run(second()) == (Role.ADMIN, 1)

    def test_create_uses_config(self, tmp_path, gateway):
        config = _config(tmp_path)
        auth = AuthContext.create(config, gateway=gateway)

        assert auth.store.path == config.paths.local_store_path
        assert auth.hasher.parameters["iterations"] == 100_000
        assert auth.gateway is gateway

        auth.open()
        auth.open()
        assert auth.sessions.current_session is None
        run(auth.close())
        assert gateway.closed

    def test_close_without_open_releases_gateway(self, tmp_path, gateway):
        auth = AuthContext.create(_config(tmp_path), gateway=gateway)

        run(auth.close())

        assert gateway.closed
        assert not auth.is_open
