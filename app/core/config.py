from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=5000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./matajir.db",
        alias="DATABASE_URL",
    )
    db_create_all: bool = Field(default=False, alias="DB_CREATE_ALL")
    db_echo: bool = Field(default=False, alias="DB_ECHO")

    redis_url: str = Field(default="", alias="REDIS_URL")
    realtime_channel: str = Field(default="resource:changed", alias="REALTIME_CHANNEL")

    celery_broker_url: str = Field(default="redis://localhost:6379/1", alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2",
        alias="CELERY_RESULT_BACKEND",
    )

    fulfillment_timeout_seconds: float = Field(default=10.0, gt=0, alias="FULFILLMENT_TIMEOUT_SECONDS")
    fulfillment_max_attempts: int = Field(default=3, ge=1, alias="FULFILLMENT_MAX_ATTEMPTS")

    chargily_secret_key: str = Field(default="", alias="CHARGILY_SECRET_KEY")
    chargily_base_url: str = Field(
        default="https://pay.chargily.net/test/api/v2",
        alias="CHARGILY_BASE_URL",
    )
    chargily_dzd_rate: float = Field(default=200.0, gt=0, alias="CHARGILY_DZD_RATE")
    paypal_client_id: str = Field(default="", alias="PAYPAL_CLIENT_ID")
    paypal_client_secret: str = Field(default="", alias="PAYPAL_CLIENT_SECRET")
    paypal_base_url: str = Field(default="https://api-m.sandbox.paypal.com", alias="PAYPAL_BASE_URL")
    checkout_success_url: str = Field(default="http://localhost:3000/success", alias="CHECKOUT_SUCCESS_URL")
    checkout_failure_url: str = Field(default="http://localhost:3000/failed", alias="CHECKOUT_FAILURE_URL")
    payment_gateway_timeout_seconds: float = Field(default=15.0, gt=0, alias="PAYMENT_GATEWAY_TIMEOUT_SECONDS")

    bcrypt_rounds: int = Field(default=12, ge=4, le=16, alias="BCRYPT_ROUNDS")

    ops_alert_webhook_url: str = Field(default="", alias="OPS_ALERT_WEBHOOK_URL")
    ops_alert_slack_webhook_url: str = Field(default="", alias="OPS_ALERT_SLACK_WEBHOOK_URL")

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
