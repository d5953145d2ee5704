"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./voucherflow.db", alias="DATABASE_URL"
    )
    aws_region: str = Field(default="us-west-1", alias="AWS_REGION")
    aws_s3_bucket: str = Field(default="local", alias="AWS_S3_BUCKET")
    aws_access_key_id: str | None = Field(
        default=None, alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: str | None = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )
    local_storage_path: str = Field(
        default="/tmp/voucherflow", alias="LOCAL_STORAGE_PATH"
    )
    ticket_prefix: str = Field(default="VOC", alias="TICKET_PREFIX")
    auto_initiate_payment: bool = Field(default=True, alias="AUTO_INITIATE_PAYMENT")
    identity_token_secret: str = Field(
        default="voucherflow-development-secret", alias="IDENTITY_TOKEN_SECRET"
    )
    identity_token_algorithm: str = Field(
        default="HS256", alias="IDENTITY_TOKEN_ALGORITHM"
    )
    identity_audience: str = Field(default="voucherflow", alias="IDENTITY_AUDIENCE")
    identity_token_ttl_minutes: int = Field(
        default=60, alias="IDENTITY_TOKEN_TTL_MINUTES"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def local_attachments(self) -> bool:
        """Return ``True`` when attachments are kept on the local filesystem."""

        return self.aws_s3_bucket.lower() == "local"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
