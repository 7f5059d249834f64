"""Configuration management for Visual Composer."""

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Timeline defaults
    default_item_duration: float = 3.0  # Reference editor uses 3s per asset
    default_transition_duration: float = 0.5
    reorder_policy: Literal["preserve", "repack"] = "preserve"
    
    # Rendering
    default_fps: int = 30
    transform_cache_size: int = 64  # Resolved rasters kept per assembler
    background_color: str = "#000000"
    placeholder_color: str = "#3c3c3c"
    font_path: Optional[str] = None
    
    # Export
    gap_policy: Literal["reject", "black"] = "reject"
    output_dir: str = "./exports"
    
    # Development
    debug: bool = False
    log_level: str = "INFO"
    
    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )
    
    @property
    def effective_log_level(self) -> str:
        """Log level, forced to DEBUG when debug mode is on."""
        return "DEBUG" if self.debug else self.log_level.upper()


# Global settings instance
settings = Settings()
