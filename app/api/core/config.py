import os
from pathlib import Path
from typing import Optional

from decouple import Config, RepositoryEnv
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = next(p for p in Path(__file__).resolve().parents if (p / "main.py").exists())
BASE_DIR = PROJECT_ROOT

# Determine which env file to load
env_file = os.getenv("ENV_FILE", ".env")
env_path = PROJECT_ROOT / env_file

# Only use RepositoryEnv if the env file exists
if env_path.exists():
    config = Config(RepositoryEnv(env_path))
else:
    # fallback: read directly from os.environ using decouple's AutoConfig
    from decouple import AutoConfig

    config = AutoConfig(search_path=None)


class Settings(BaseSettings):
    # App general
    DEBUG: bool = config("DEBUG", default=False, cast=bool)
    APP_NAME: str = config("APP_NAME", default="RACKZ")
    APP_VERSION: str = config("APP_VERSION", default="1.0.0")
    ENVIRONMENT: str = config("ENVIRONMENT", default="dev")
    APP_PORT: int = config("APP_PORT", default=5050, cast=int)
    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")
    APP_URL: str = config("APP_URL", default="https://rackz.io")
    DEV_URL: str = config("DEV_URL", default="http://localhost:3000")

    # Database
    DB_TYPE: str = config("DB_TYPE", default="postgresql")
    DB_HOST: str = config("DB_HOST", default="localhost")
    DB_PORT: int = config("DB_PORT", default=5432, cast=int)
    DB_USER: str = config("DB_USER", default="user")
    DB_PASS: str = config("DB_PASS", default="password")
    DB_NAME: str = config("DB_NAME", default="rackz")
    DB_ECHO: bool = config("DB_ECHO", default=False, cast=bool)
    DB_POOL_SIZE: int = config("DB_POOL_SIZE", default=10, cast=int)
    DB_MAX_OVERFLOW: int = config("DB_MAX_OVERFLOW", default=20, cast=int)

    # Redis
    REDIS_URL: str = config("REDIS_URL", default="redis://localhost:6379/0")
    REDIS_MAX_CONNECTIONS: int = config("REDIS_MAX_CONNECTIONS", default=10, cast=int)

    # JWT Authentication
    JWT_SECRET: str = config("JWT_SECRET", default="your-super-secret-jwt-key-change-in-production")
    JWT_ALGORITHM: str = config("JWT_ALGORITHM", default="HS256")
    JWT_EXPIRY_HOURS: int = config("JWT_EXPIRY_HOURS", default=24, cast=int)

    # Stripe configuration
    STRIPE_SECRET_KEY: str = config("STRIPE_SECRET_KEY", default="sk_test_...")
    # Empty means webhook signatures are not verified (development only)
    STRIPE_WEBHOOK_SECRET: Optional[str] = config("STRIPE_WEBHOOK_SECRET", default=None)
    STRIPE_CONNECT_CLIENT_ID: str = config("STRIPE_CONNECT_CLIENT_ID", default="ca_...")
    STRIPE_CONNECT_SCOPE: str = config("STRIPE_CONNECT_SCOPE", default="read_only")
    STRIPE_API_TIMEOUT: int = config("STRIPE_API_TIMEOUT", default=30, cast=int)
    STRIPE_PAYMENTS_LIMIT: int = config("STRIPE_PAYMENTS_LIMIT", default=100, cast=int)
    STRIPE_SUBSCRIPTIONS_LIMIT: int = config("STRIPE_SUBSCRIPTIONS_LIMIT", default=100, cast=int)

    # Stripe read cache
    STRIPE_CACHE_TTL_SECONDS: int = config("STRIPE_CACHE_TTL_SECONDS", default=3600, cast=int)
    STRIPE_CACHE_REAPER_MINUTES: int = config("STRIPE_CACHE_REAPER_MINUTES", default=15, cast=int)

    # Stripe Connect OAuth
    STRIPE_OAUTH_STATE_TTL: int = config("STRIPE_OAUTH_STATE_TTL", default=600, cast=int)
    STRIPE_CONNECT_RETURN_PATH: str = config(
        "STRIPE_CONNECT_RETURN_PATH", default="/dashboard?stripe=connected"
    )

    # Frontend URL (for Stripe redirects)
    @property
    def FRONTEND_URL(self) -> str:
        return os.getenv("FRONTEND_URL") or (self.DEV_URL if self.DEBUG else self.APP_URL)

    @property
    def STRIPE_CONNECT_RETURN_URL(self) -> str:
        return f"{self.FRONTEND_URL}{self.STRIPE_CONNECT_RETURN_PATH}"

    model_config = SettingsConfigDict(extra="allow")


settings = Settings()
