"""Tests for CentralTruckConfig."""

from pathlib import Path

import pytest

from centraltruck.core.config import (
    CentralTruckConfig,
    LoggingConfig,
    PathConfig,
    SecurityConfig,
    StoreConfig,
    StoreConfigError,
)


@pytest.fixture(autouse=True)
def _reset_instance():
    CentralTruckConfig.reset_instance()
    yield
    CentralTruckConfig.reset_instance()


class TestDefaults:

    def test_security_defaults(self):
        security = CentralTruckConfig().security
        assert security.kdf_iterations == 100_000
        assert security.salt_length == 16
        assert security.hash_length == 32
        assert security.session_ttl_seconds == 8 * 60 * 60
        assert security.max_login_attempts == 5
        assert security.attempt_window_seconds == 15 * 60
        assert security.lockout_duration_seconds == 15 * 60
        assert (security.throttle_base_ms, security.throttle_step_ms, security.throttle_cap_ms) == (300, 150, 1500)

    def test_store_defaults(self):
        store = CentralTruckConfig().store
        assert store.admins_collection == "admins"
        assert store.drivers_collection == "drivers"
        assert store.project_id == ""

    def test_local_store_path(self, tmp_path):
        paths = PathConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs")
        assert paths.local_store_path == tmp_path / "data" / "centraltruck.db"


class TestValidation:

    def test_weak_kdf_rejected(self):
        with pytest.raises(ValueError):
            SecurityConfig(kdf_iterations=10_000)

    def test_non_positive_window_rejected(self):
        with pytest.raises(ValueError):
            SecurityConfig(attempt_window_seconds=0)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            SecurityConfig(locked_delay_ms=-1)

    def test_relative_paths_rejected(self):
        with pytest.raises(ValueError):
            PathConfig(data_dir=Path("relative"))

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")

    def test_store_config_lists_missing_keys(self):
        with pytest.raises(StoreConfigError) as excinfo:
            StoreConfig(drivers_collection=" ").validate()
        assert "project_id" in str(excinfo.value)
        assert "drivers_collection" in str(excinfo.value)

        StoreConfig(project_id="central-truck").validate()


class TestEnvironmentOverrides:

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CENTRALTRUCK_SECURITY__SESSION_TTL_SECONDS", "3600")
        monkeypatch.setenv("CENTRALTRUCK_SECURITY__MAX_LOGIN_ATTEMPTS", "3")
        monkeypatch.setenv("CENTRALTRUCK_STORE__PROJECT_ID", "central-truck-prod")
        monkeypatch.setenv("CENTRALTRUCK_LOGGING__LEVEL", "DEBUG")
        monkeypatch.setenv("CENTRALTRUCK_LOGGING__ENABLE_FILE", "false")
        monkeypatch.setenv("CENTRALTRUCK_PATHS__DATA_DIR", str(tmp_path))

        config = CentralTruckConfig.load()

        assert config.security.session_ttl_seconds == 3600
        assert config.security.max_login_attempts == 3
        assert config.store.project_id == "central-truck-prod"
        assert config.logging.level == "DEBUG"
        assert config.logging.enable_file is False
        assert config.paths.data_dir == tmp_path

    def test_sensitive_keys_ignored(self, monkeypatch):
        monkeypatch.setenv("CENTRALTRUCK_SECURITY__SALT_LENGTH", "8")
        config = CentralTruckConfig.load()
        assert config.security.salt_length == 16

    def test_singleton(self, monkeypatch):
        monkeypatch.setenv("CENTRALTRUCK_STORE__PROJECT_ID", "first")
        first = CentralTruckConfig.get_instance()
        monkeypatch.setenv("CENTRALTRUCK_STORE__PROJECT_ID", "second")

        assert CentralTruckConfig.get_instance() is first
        CentralTruckConfig.reset_instance()
        assert CentralTruckConfig.get_instance().store.project_id == "second"


class TestImmutability:

    def test_config_is_frozen(self):
        config = CentralTruckConfig()
        with pytest.raises(AttributeError):
            config._security = SecurityConfig()

    def test_sections_are_frozen(self):
        with pytest.raises(AttributeError):
            CentralTruckConfig().security.session_ttl_seconds = 1

    def test_hash_tracks_content(self):
        assert CentralTruckConfig().config_hash == CentralTruckConfig().config_hash
        other = CentralTruckConfig(security=SecurityConfig(max_login_attempts=3))
        assert other.config_hash != CentralTruckConfig().config_hash

    def test_ensure_directories(self, tmp_path):
        config = CentralTruckConfig(
            paths=PathConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs"),
        )
        config.ensure_directories()
        assert (tmp_path / "data").is_dir()
        assert (tmp_path / "logs").is_dir()
