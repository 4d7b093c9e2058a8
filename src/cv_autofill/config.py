"""Configuration management for CV Autofill."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="CV_AUTOFILL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Detection thresholds
    min_field_mapping_confidence: float = Field(0.3, description="Mappings at or below this are discarded")
    min_autofill_confidence: float = Field(0.4, description="Mappings must exceed this to be written")
    min_file_upload_confidence: float = Field(0.5, description="Uploads must reach this to be attempted")
    tables_path: Optional[str] = Field(None, description="JSON file overriding the classifier tables")

    # Fill execution
    field_fill_delay_ms: int = Field(50, description="Delay between consecutive field writes in ms")
    feedback_duration_ms: int = Field(2000, description="How long visual fill feedback stays on the page")
    max_cv_file_size: int = Field(5 * 1024 * 1024, description="Largest CV accepted for storage in bytes")

    # Scanning
    scan_interval_seconds: float = Field(3.0, description="Periodic rescan interval while watching")
    rescan_debounce_seconds: float = Field(0.5, description="Quiet window after DOM mutations before a rescan")
    ping_timeout_seconds: float = Field(5.0, description="Liveness ping timeout")

    # Storage
    store_path: str = Field("./data/autofill_store.json", description="JSON file backing the profile store")

    # Browser Configuration
    browser_headless: bool = Field(True, description="Run browser in headless mode")
    browser_timeout: int = Field(30, description="Browser operation timeout in seconds")
    viewport_width: int = Field(1280, description="Browser viewport width")
    viewport_height: int = Field(900, description="Browser viewport height")

    # Application Configuration
    debug: bool = Field(False, description="Enable debug mode")
    log_level: str = Field("INFO", description="Logging level")


# Global settings instance
settings = Settings()
