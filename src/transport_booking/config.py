"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSPORT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Vehicle Transport Booking API"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    data_root: Path = Field(default=Path("data"), description="Root directory for seed data files.")
    providers_file: Optional[Path] = Field(
        default=None,
        description="Provider catalog used when the database is not configured. Defaults to data_root/transport_providers.json.",
    )
    currencies_file: Optional[Path] = Field(
        default=None,
        description="Exchange-rate table used when the database is not configured. Defaults to data_root/currencies.json.",
    )
    customs_file: Optional[Path] = Field(
        default=None,
        description="Per-country import requirements used when the database is not configured. Defaults to data_root/customs_regulations.json.",
    )

    base_currency: str = Field(default="EUR", min_length=3, max_length=3)
    quote_validity_days: int = Field(default=7, ge=1)
    non_running_surcharge: float = Field(default=1.25, ge=1.0)
    domestic_lead_days: int = Field(default=3, ge=0)
    cross_border_lead_days: int = Field(default=7, ge=0)
    carnet_lead_days: int = Field(default=14, ge=0)
    customs_handling_fee: float = Field(default=250.0, ge=0.0)
    door_to_door_fee: float = Field(default=150.0, ge=0.0)
    expedited_fee: float = Field(default=300.0, ge=0.0)
    quote_max_workers: int = Field(default=8, ge=1, description="Thread pool size for per-provider pricing.")

    enforce_transitions: bool = Field(
        default=True,
        description="Reject status changes that are not in the booking transition table.",
    )
    booking_write_retries: int = Field(
        default=3,
        ge=1,
        description="Optimistic write attempts before a concurrency conflict is reported.",
    )
    default_page_size: int = Field(default=20, ge=1, le=200)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
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

    @field_validator("data_root", "providers_file", "currencies_file", "customs_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None:
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("base_currency", mode="after")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @model_validator(mode="after")
    def _derive_data_files(self) -> "Settings":
        """Seed files not set explicitly live under ``data_root``."""
        root = self.data_root.expanduser().resolve()
        self.data_root = root
        self.providers_file = self.providers_file or root / "transport_providers.json"
        self.currencies_file = self.currencies_file or root / "currencies.json"
        self.customs_file = self.customs_file or root / "customs_regulations.json"
        return self


settings = Settings()
