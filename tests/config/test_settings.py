"""
Settings loading and the config -> kernel bridge.
"""

from pathlib import Path

import pytest
import yaml

from oceanre_config import DEFAULT_CONFIG_PATH, get_active_settings
from oceanre_config.bridges import build_kernel_services
from oceanre_config.loader import parse_role_capabilities, parse_settings
from oceanre_config.settings import (
    ACCOUNTING_READ,
    ACCOUNTING_WRITE,
    PERIOD_LIFECYCLE,
    PERIOD_STATUS_OVERRIDE,
    Settings,
)


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.delenv("OCEANRE_CONFIG", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


class TestDefaultSettings:
    def test_packaged_default_loads(self):
        settings = get_active_settings()

        assert DEFAULT_CONFIG_PATH.exists()
        assert settings.amount_places == 2
        assert settings.enforce_single_open_period is False

    def test_default_roles(self):
        settings = get_active_settings()

        assert settings.grants("ACCOUNTANT", PERIOD_LIFECYCLE)
        assert settings.grants("accountant", PERIOD_STATUS_OVERRIDE)
        assert settings.grants("ADMIN", PERIOD_STATUS_OVERRIDE)
        assert not settings.grants("ADMIN", PERIOD_LIFECYCLE)
        assert settings.grants("SALESPERSON", ACCOUNTING_READ)
        assert not settings.grants("SALESPERSON", ACCOUNTING_WRITE)
        assert settings.capabilities_for("VISITOR") == frozenset()


class TestFileSelection:
    def test_explicit_path(self, tmp_path):
        path = _write(
            tmp_path,
            {"database_url": "sqlite://", "amount_places": 4, "enforce_single_open_period": True},
        )

        settings = get_active_settings(path)

        assert settings.database_url == "sqlite://"
        assert settings.amount_places == 4
        assert settings.enforce_single_open_period is True

    def test_env_selects_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"database_url": "sqlite:///env.db", "log_level": "debug"})
        monkeypatch.setenv("OCEANRE_CONFIG", str(path))

        settings = get_active_settings()

        assert settings.database_url == "sqlite:///env.db"
        assert settings.log_level == "DEBUG"

    def test_database_url_env_overrides_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"database_url": "sqlite:///file.db"})
        monkeypatch.setenv("DATABASE_URL", "postgresql://ledger@localhost/oceanre")

        assert get_active_settings(path).database_url == "postgresql://ledger@localhost/oceanre"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings(tmp_path / "absent.yaml")


class TestParsing:
    def test_missing_database_url(self):
        with pytest.raises(KeyError):
            parse_settings({"amount_places": 2})

    def test_unknown_capability_rejected(self):
        with pytest.raises(ValueError, match="Unknown capabilities"):
            parse_role_capabilities({"CLERK": [ACCOUNTING_READ, "ledger.delete_everything"]})

    def test_roles_upper_cased(self):
        parsed = parse_role_capabilities({"clerk": [ACCOUNTING_READ], "auditor": None})

        assert parsed == {"CLERK": frozenset({ACCOUNTING_READ}), "AUDITOR": frozenset()}

    @pytest.mark.parametrize("places", [-1, 7, "2", True])
    def test_invalid_amount_places(self, places):
        with pytest.raises(ValueError):
            parse_settings({"database_url": "sqlite://", "amount_places": places})

    def test_non_boolean_flag(self):
        with pytest.raises(ValueError):
            parse_settings({"database_url": "sqlite://", "enforce_single_open_period": "yes"})

    def test_unknown_log_level(self):
        with pytest.raises(ValueError):
            parse_settings({"database_url": "sqlite://", "log_level": "LOUD"})


class TestBridges:
    def test_settings_reach_kernel_services(self, session, period_guard):
        settings = Settings(database_url="sqlite://", amount_places=3, enforce_single_open_period=True)

        services = build_kernel_services(session, settings, guard=period_guard)

        assert services.journal._places == 3
        assert services.periods._places == 3
        assert services.periods._single_open is True
        assert services.periods._guard is period_guard
