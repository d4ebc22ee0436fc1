"""Runtime settings, read from ``FULFILLMENT_*`` environment variables or ``.env``."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FULFILLMENT_", env_file=".env", extra="ignore")

    # AWS
    aws_region: str = "ap-south-1"
    aws_endpoint_url: str | None = None  # e.g. DynamoDB Local / LocalStack

    # DynamoDB tables
    table_prefix: str = "fulfillment"

    # Messaging
    events_topic_arn: str | None = None
    sms_enabled: bool = False

    # Payment gateway (Razorpay)
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    webhook_secret: str = ""

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    def table_name(self, suffix: str) -> str:
        return f"{self.table_prefix}-{suffix}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
