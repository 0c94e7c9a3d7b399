"""Environment-driven application settings.

Values are loaded once at startup by pydantic-settings, from the process
environment first and then from a `.env` file in the working directory.
Variable names are the upper-cased field names (`DATABASE_DIR`,
`OPENAI_API_KEY`, ...). Empty variables count as unset.

Invalid values (a non-integer limit, an unparseable boolean, a missing
required key) raise `pydantic.ValidationError` when the settings are built,
so a misconfigured service fails at startup instead of on its first request.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Settings needed to open the SQLite database.

    Used on its own by `manage_credits.py`, which has no use for the
    provider or payment keys.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    database_dir: Path = Field(
        description="Directory holding the SQLite file `app.db`",
    )
    database_reset: bool = Field(
        default=False,
        description="Wipe the database on startup",
    )

    @field_validator("database_dir")
    @classmethod
    def _expand_database_dir(cls, value: Path) -> Path:
        if not str(value).strip():
            raise ValueError("DATABASE_DIR must be a writable directory path")
        return value.expanduser()


class Settings(DatabaseSettings):
    """Runtime configuration for the service.

    Attributes:
        openai_api_key: Key for the image generation provider.
        openai_image_model: Model passed to `images.generate`.
        openai_image_size: Size passed to `images.generate`.
        s3_bucket: Bucket for generated images; local storage is used when unset.
        s3_storage_domain: Domain used to build public blob URLs.
        aws_region: Optional region for the S3 client.
        blob_dir: Directory for the local blob store.
        public_base_url: Prefix for URLs of locally stored blobs; defaults to `host`.
        stripe_secret_key: Stripe API key; checkout is disabled when unset.
        stripe_credit_price: Stripe price id of one credit pack.
        stripe_webhook_secret: Signing secret for the payment webhook.
        credits_per_purchase: Credits granted by one completed checkout.
        host: Base URL Stripe redirects to after checkout.
        auth_user_header: Header carrying the authenticated user id.
        public_image_limit: Default size of the public listing.
        download_timeout_seconds: Timeout for fetching generated images.
        log_level: Root logging level.
    """

    openai_api_key: str = Field(min_length=1)
    openai_image_model: str = "dall-e-2"
    openai_image_size: str = "1024x1024"

    # Blob storage
    s3_bucket: Optional[str] = None
    s3_storage_domain: str = "s3.amazonaws.com"
    aws_region: Optional[str] = None
    blob_dir: Optional[Path] = None
    public_base_url: Optional[str] = None

    # Payments
    stripe_secret_key: Optional[str] = None
    stripe_credit_price: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    credits_per_purchase: int = Field(default=100, ge=1)

    host: str = "http://localhost:8000"
    auth_user_header: str = Field(default="X-User-Id", min_length=1)
    public_image_limit: int = Field(default=100, ge=1)
    download_timeout_seconds: int = Field(default=60, ge=1)
    log_level: str = "INFO"

    @field_validator("host", "public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        return value.rstrip("/") if value else value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("blob_dir")
    @classmethod
    def _expand_blob_dir(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value else value

    @model_validator(mode="after")
    def _default_public_base_url(self) -> "Settings":
        if not self.public_base_url:
            self.public_base_url = self.host
        return self

    @property
    def local_blob_dir(self) -> Path:
        return self.blob_dir or (self.database_dir / "blobs")
