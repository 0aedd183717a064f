"""
Configuration Management for WealthWise

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger itself needs almost nothing; storage location and the
AI provider are the only things a user is expected to set.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (advisor and market data lookups)."""
    
    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )
    
    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=2.0,
        description="Model temperature for advisor answers"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single generation request"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.
    
    Loads configuration from environment variables and .env file.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Persistence
    data_dir: Path = Field(
        default=Path.home() / ".wealthwise",
        description="Directory holding the persisted data blob"
    )
    storage_key: str = Field(
        default="wealthwise_data_v1",
        min_length=1,
        description="Fixed key (file stem) of the persisted data blob"
    )
    export_dir: Path = Field(
        default=Path("."),
        description="Default directory for exported backups"
    )
    
    # Recurring payments
    recurring_note_prefix: str = Field(
        default="[Auto]",
        description="Prefix for notes of transactions created by a recurring rule"
    )
    
    # Advisor context
    advisor_recent_transactions: int = Field(
        default=20,
        ge=1,
        le=200,
        description="How many recent transactions are sent to the advisor"
    )
    
    # Currency
    base_currency: str = Field(
        default="TWD",
        min_length=3,
        max_length=3,
        description="Currency all balances are kept in"
    )
    default_fx_rate: Decimal = Field(
        default=Decimal("32"),
        gt=0,
        description="Fallback FX rate for foreign-currency investments"
    )
    
    @field_validator('storage_key')
    @classmethod
    def validate_storage_key(cls, v: str) -> str:
        """The key becomes a file name, so no path separators."""
        if "/" in v or "\\" in v:
            raise ValueError("storage_key must not contain path separators")
        return v
    
    @field_validator('base_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()
    
    @property
    def storage_path(self) -> Path:
        """Full path of the persisted blob."""
        return self.data_dir / f"{self.storage_key}.json"


class Settings(BaseSettings):
    """
    Root settings container.
    
    Aggregates all sub-settings for easy access.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Note: These are loaded lazily so the ledger works without an API key
    
    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()
    
    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    
    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
