"""Configuration service for the storefront.
Loads configuration from a .env file, environment variables and a secrets file.
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal, cast

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from store_common.db.db import DBConfig

logger = logging.getLogger(__name__)

PAYPAL_LIVE_URL = "https://api-m.paypal.com"
PAYPAL_SANDBOX_URL = "https://api-m.sandbox.paypal.com"


class PayPalSection(BaseModel):
    client_id: str = ""
    client_secret: str = ""
    mode: Literal["sandbox", "live"] = "sandbox"
    timeout_seconds: float = 30.0
    brand_name: str = "DaoVerse"

    @property
    def base_url(self) -> str:
        return PAYPAL_LIVE_URL if self.mode == "live" else PAYPAL_SANDBOX_URL

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class ShardsSection(BaseModel):
    """Shard labels in declaration order; the first one is the primary (metadata) shard."""

    labels: list[str] = Field(default_factory=lambda: ["S0", "DS1"])
    databases: dict[str, DBConfig] = Field(default_factory=dict)

    @property
    def primary(self) -> str:
        return self.labels[0]


class AuthSection(BaseModel):
    session_secret: str = ""
    allow_client_asserted: bool = True
    admin_api_key: str = ""


class RateLimitSection(BaseModel):
    window_seconds: float = 60.0
    max_requests: int = 5


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1", "t", "yes")


class ConfigService:
    """Service for loading and accessing application configuration.
    Combines environment variables with secrets from a YAML file.
    """

    paypal: PayPalSection
    shards: ShardsSection
    auth: AuthSection
    rate_limit: RateLimitSection

    def __init__(self, base_dir: Path | None = None) -> None:
        self._config: dict[str, Any] = {}
        self._secrets: dict[str, Any] = {}
        self._base_dir = base_dir or Path(__file__).resolve().parent.parent.parent
        self._env = os.getenv("APP_ENV", "local")

        self._load_env_file()
        self._load_env_vars()
        self._load_secrets()

        self.paypal = PayPalSection(
            client_id=str(self.get("paypal.client_id") or ""),
            client_secret=str(self.get("paypal.client_secret") or ""),
            mode="live" if str(self.get("paypal.mode") or "").lower() == "live" else "sandbox",
            timeout_seconds=float(self.get("paypal.timeout_seconds") or 30),
        )
        self.shards = self._load_shards()
        self.auth = AuthSection(
            session_secret=str(self.get("auth.session_secret") or ""),
            allow_client_asserted=_as_bool(self.get("auth.allow_client_asserted"), default=True),
            admin_api_key=str(self.get("auth.admin_api_key") or ""),
        )
        self.rate_limit = RateLimitSection(
            window_seconds=float(self.get("rate_limit.window_seconds") or 60),
            max_requests=int(self.get("rate_limit.max_requests") or 5),
        )

    def _load_env_file(self) -> None:
        """Load .env.<APP_ENV>, falling back to a plain .env"""
        for env_file in (self._base_dir / f".env.{self._env}", self._base_dir / ".env"):
            if env_file.exists():
                logger.info(f"Loading environment from {env_file}")
                _ = load_dotenv(env_file)
                return

        logger.info("No environment file found. Using process environment only.")

    def _load_env_vars(self) -> None:
        """Load configuration from environment variables"""
        self._config = {
            "app_env": self._env,
            "debug": _as_bool(os.getenv("DEBUG"), default=False),
            "api_prefix": os.getenv("API_PREFIX", "/api"),
            "project_name": os.getenv("PROJECT_NAME", "DaoVerse Storefront"),
            "cors_origins": os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5000").split(","),
            "port": int(os.getenv("PORT", "5000")),
            "host": os.getenv("HOST", "0.0.0.0"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "public_base_url": os.getenv("PUBLIC_BASE_URL") or os.getenv("NEXTAUTH_URL") or os.getenv("NEXT_PUBLIC_BASE_URL") or "",
        }
        # Non-secret values that may also come from the environment; secrets.yaml fills in the rest
        env_overrides = {
            "paypal.client_id": os.getenv("PAYPAL_CLIENT_ID"),
            "paypal.client_secret": os.getenv("PAYPAL_CLIENT_SECRET"),
            "paypal.mode": os.getenv("PAYPAL_MODE"),
            "paypal.timeout_seconds": os.getenv("PAYPAL_TIMEOUT_SECONDS"),
            "auth.session_secret": os.getenv("SESSION_SECRET"),
            "auth.allow_client_asserted": os.getenv("ALLOW_CLIENT_ASSERTED_IDENTITY"),
            "auth.admin_api_key": os.getenv("ADMIN_API_KEY"),
            "rate_limit.window_seconds": os.getenv("RATE_LIMIT_WINDOW_SECONDS"),
            "rate_limit.max_requests": os.getenv("RATE_LIMIT_MAX_REQUESTS"),
        }
        self._config.update({key: value for key, value in env_overrides.items() if value})

    def _load_secrets(self) -> None:
        """Load secrets from YAML file"""
        for file_path in (self._base_dir / f"secrets.{self._env}.yaml", self._base_dir / "secrets.yaml"):
            if not file_path.exists():
                continue
            try:
                with open(file_path) as f:
                    self._secrets = yaml.safe_load(f) or {}
                logger.info(f"Loaded secrets from {file_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.exception(f"Error loading secrets file: {e}")
                self._secrets = {}
            return

    def _load_shards(self) -> ShardsSection:
        labels = [label.strip() for label in str(self.get("DB_SHARDS") or "S0,DS1").split(",") if label.strip()]
        primary = labels[0]
        driver = str(self.get("DB_DRIVER") or "postgresql+asyncpg")

        databases: dict[str, DBConfig] = {}
        for label in labels:
            suffix = "" if label == primary else f"_{label}"
            secrets = self.get(f"shards.{label}") or {}
            databases[label] = DBConfig(
                driver=driver,
                host=os.getenv(f"DB_HOST{suffix}") or secrets.get("host") or "localhost",
                port=int(os.getenv(f"DB_PORT{suffix}") or secrets.get("port") or 5432),
                user=os.getenv(f"DB_USER{suffix}") or secrets.get("user") or "postgres",
                password=os.getenv(f"DB_PASSWORD{suffix}") or secrets.get("password") or "",
                db_name=os.getenv(f"DB_NAME{suffix}") or secrets.get("name") or f"daoverse_{label.lower()}",
                pool_size=int(os.getenv(f"DB_POOL_SIZE{suffix}") or secrets.get("pool_size") or 10),
            )
        return ShardsSection(labels=labels, databases=databases)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key.
        Priority order:
        1. Environment variables (from _config dict)
        2. Local secrets file (dot notation for nested keys)
        3. Direct environment variable lookup (os.getenv)
        4. Default value
        """
        if key in self._config:
            return self._config[key]

        value: Any = self._secrets
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = cast("Any", value[part])
            else:
                break
        else:
            return value

        env_value = os.getenv(key)
        if env_value is not None:
            return env_value

        return default

    @property
    def public_base_url(self) -> str:
        """Origin of the web app, used for PayPal return and cancel URLs."""
        return str(self.get("public_base_url") or f"http://localhost:{self.get('port', 5000)}").rstrip("/")

    def get_environment(self) -> str:
        return self._env

    def is_testing(self) -> bool:
        return self._env.lower() in ("test", "testing")


class Settings(BaseSettings):
    """Process-level settings (API surface, CORS, logging)."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore")

    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "DaoVerse Storefront"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5000"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @property
    def BACKEND_CORS_ORIGINS(self) -> list[str]:
        """Returns the CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
