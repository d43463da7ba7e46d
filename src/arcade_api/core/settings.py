from decimal import Decimal
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

INSECURE_SECRET_KEY = "change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./arcade.db"
    database_echo: bool = False
    database_auto_create: bool = False
    log_level: str = "INFO"
    secret_key: str = INSECURE_SECRET_KEY

    # Session cookies
    session_cookie_name: str = "arcade_session"
    session_ttl_seconds: int = 24 * 60 * 60
    session_cookie_secure: bool = False

    # Cashier top-ups: one point per this much cash paid
    topup_amount_per_point: Decimal = Decimal("50")

    # Reward claim tickets
    redemption_code_prefix: str = "RWD"
    admin_redemption_code_prefix: str = "ADM"

    # Comma-separated in the environment, e.g. CORS_ALLOWED_ORIGINS=http://a.test,http://b.test
    cors_allowed_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def _parse_origin_list(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    @field_validator("topup_amount_per_point")
    @classmethod
    def _require_positive_rate(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("topup_amount_per_point must be positive")
        return value

    @model_validator(mode="after")
    def _require_secret_in_production(self) -> "Settings":
        if self.environment == "production" and self.secret_key == INSECURE_SECRET_KEY:
            raise ValueError("SECRET_KEY must be set in production")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
