"""Application configuration and settings management."""

from typing import Annotated, Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CGW_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Carrier Gateway API"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    target_countries: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("IT",),
        description="Destination country codes the carrier serves (allow-list for rate quotes).",
    )
    carrier_service_name: str = Field(
        default="Carrier Shipping",
        description="Carrier service name registered on the storefront; matched against shipping_lines[0].source.",
    )
    carrier_base_url: str = Field(
        default="https://stage.pratkabg.com",
        description="Carrier API base URL stored with newly configured credentials.",
    )
    settlement_currency: str = Field(default="EUR", min_length=3, max_length=3)
    platform_domain: str = Field(
        default="myshopify.com",
        description="Domain suffix of storefront hosts (used to extract the shop from order status URLs).",
    )
    carrier_timeout_seconds: float = Field(default=10.0, gt=0.0)
    carrier_max_retries: int = Field(default=2, ge=0)
    carrier_backoff_seconds: float = Field(default=0.5, ge=0.0)
    order_create_retries: int = Field(
        default=0,
        ge=0,
        description="Retries for order creation; each retry resends the same reference id.",
    )
    default_payment_type: int = Field(default=1, ge=0)
    default_country_code: str = "IT"
    default_country: str = "Italy"
    registration_workers: int = Field(default=4, ge=1)

    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    credentials_table: str = Field(default="api_data", description="Table holding per-shop carrier credentials.")

    @field_validator("target_countries", "frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        # Return empty tuple if value is None or empty
        return tuple()

    @field_validator("carrier_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


settings = Settings()
