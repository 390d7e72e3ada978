from pathlib import Path

import pytest
import yaml

from store_common.core.config_service import PAYPAL_LIVE_URL, PAYPAL_SANDBOX_URL, ConfigService

_ENV_KEYS = [
    "PAYPAL_CLIENT_ID",
    "PAYPAL_CLIENT_SECRET",
    "PAYPAL_MODE",
    "PAYPAL_TIMEOUT_SECONDS",
    "SESSION_SECRET",
    "ALLOW_CLIENT_ASSERTED_IDENTITY",
    "ADMIN_API_KEY",
    "RATE_LIMIT_WINDOW_SECONDS",
    "RATE_LIMIT_MAX_REQUESTS",
    "PUBLIC_BASE_URL",
    "NEXTAUTH_URL",
    "NEXT_PUBLIC_BASE_URL",
    "DB_SHARDS",
    "DB_DRIVER",
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_HOST_DS1",
    "DB_NAME_DS1",
    "PORT",
]


@pytest.fixture
def base_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("APP_ENV", "test")
    secrets = {
        "paypal": {"client_id": "yaml-client", "client_secret": "yaml-secret", "mode": "live"},
        "auth": {"admin_api_key": "yaml-admin-key"},
        "shards": {"S0": {"host": "db-main", "name": "daoverse"}, "DS1": {"host": "db-ds1", "port": 6543}},
    }
    (tmp_path / "secrets.test.yaml").write_text(yaml.safe_dump(secrets))
    return tmp_path


def test_secrets_file_fills_sections(base_dir: Path) -> None:
    config = ConfigService(base_dir=base_dir)

    assert config.is_testing()
    assert config.paypal.is_configured
    assert config.paypal.base_url == PAYPAL_LIVE_URL
    assert config.auth.admin_api_key == "yaml-admin-key"
    assert config.auth.allow_client_asserted
    assert config.rate_limit.max_requests == 5
    assert config.rate_limit.window_seconds == 60


def test_environment_wins_over_secrets(base_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAYPAL_MODE", "sandbox")
    monkeypatch.setenv("ALLOW_CLIENT_ASSERTED_IDENTITY", "false")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "9")

    config = ConfigService(base_dir=base_dir)

    assert config.paypal.base_url == PAYPAL_SANDBOX_URL
    assert not config.auth.allow_client_asserted
    assert config.rate_limit.max_requests == 9


def test_shards_from_labels_secrets_and_suffixed_env(base_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_SHARDS", "S0, DS1")
    monkeypatch.setenv("DB_HOST_DS1", "db-ds1-override")

    shards = ConfigService(base_dir=base_dir).shards

    assert shards.labels == ["S0", "DS1"]
    assert shards.primary == "S0"
    main, ds1 = shards.databases["S0"], shards.databases["DS1"]
    assert (main.host, main.port, main.db_name) == ("db-main", 5432, "daoverse")
    assert (ds1.host, ds1.port, ds1.db_name) == ("db-ds1-override", 6543, "daoverse_ds1")


def test_public_base_url(base_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert ConfigService(base_dir=base_dir).public_base_url == "http://localhost:5000"

    monkeypatch.setenv("NEXTAUTH_URL", "https://shop.example/")
    assert ConfigService(base_dir=base_dir).public_base_url == "https://shop.example"


def test_missing_credentials(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("APP_ENV", "test")

    config = ConfigService(base_dir=tmp_path)

    assert not config.paypal.is_configured
    assert config.paypal.base_url == PAYPAL_SANDBOX_URL
    assert config.shards.labels == ["S0", "DS1"]
