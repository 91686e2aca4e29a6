from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    aws_region: str = Field(default="eu-west-1", alias="AWS_REGION")
    app_env: str = Field(default="dev", alias="APP_ENV")
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    s3_bucket: str = Field(default="finance-tracker-dev", alias="S3_BUCKET")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="standard", alias="LOG_FORMAT")
    access_token_expire_minutes: int = Field(default=7 * 24 * 60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    encoding_algorithm: str = Field(default="HS256", alias="ENCODING_ALGORITHM")

    # Transaction passcode gate for payments, top-ups and deletes
    tx_passcode: Optional[str] = Field(default=None, alias="TX_PASSCODE")

    # Admin bootstrap
    admin_user: str = Field(default="admin", alias="ADMIN_USER")
    admin_pass: str = Field(default="change-me-123", alias="ADMIN_PASS")
    auto_seed_admin: bool = Field(default=False, alias="AUTO_SEED_ADMIN")
    admin_upsert_on_boot: bool = Field(default=False, alias="ADMIN_UPSERT_ON_BOOT")

    allowed_origins: str = Field(default="", alias="ALLOWED_ORIGINS")
    currency_symbol: str = Field(default="₹", alias="CURRENCY_SYMBOL")

    # Guarantees / nice errors early
    @field_validator("secret_key", "s3_bucket")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("required setting is empty")
        return v

    @property
    def cors_origins(self) -> list[str]:
        extra = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return ["http://localhost:5173", *extra]

    @property
    def seed_mode(self) -> Optional[str]:
        if self.auto_seed_admin:
            return "bootstrap"
        if self.admin_upsert_on_boot:
            return "upsert"
        return None


# Global settings instance
settings = Settings()
