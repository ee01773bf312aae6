"""
Geospatial Anchor Service Configuration
Environment-based configuration management
"""

from typing import List, Optional
from datetime import datetime
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

SUPPORTED_STORE_BACKENDS = ("memory", "file", "redis")


class Settings(BaseSettings):
    """Geospatial Anchor Service configuration settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GEOSPATIAL_",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: str = Field(default="development", description="Environment (development/staging/production)")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_DIR: Optional[str] = Field(default=None, description="Directory for rotating log files (console only when unset)")

    # Server configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=9002, description="Server port")

    # Security
    API_KEY_HEADER: str = Field(default="X-API-Key", description="API key header name")
    API_KEYS: List[str] = Field(default_factory=list, description="Accepted API keys outside development")

    # Persistence backend
    STORE_BACKEND: str = Field(default="file", description="Key-value backend (memory/file/redis)")
    STORE_FILE_PATH: str = Field(default="geospatial_prefs.json", description="JSON file used by the file backend")
    REDIS_URL: Optional[str] = Field(default=None, description="Redis URL for the redis backend")
    REDIS_KEY_PREFIX: str = Field(default="geospatial:", description="Prefix applied to every redis key")

    # Anchor history
    HISTORY_STORAGE_KEY: str = Field(default="PersistentGeospatialAnchors", description="Key holding the anchor history blob")
    PRIVACY_PROMPT_KEY: str = Field(default="HasDisplayedGeospatialPrivacyPrompt", description="Key set once the privacy prompt was accepted")
    STORAGE_LIMIT: int = Field(default=5, ge=1, description="Maximum anchors kept in history")

    # Localization
    HEADING_ACCURACY_THRESHOLD: float = Field(default=25.0, description="Heading accuracy (degrees) treated as localized")
    HORIZONTAL_ACCURACY_THRESHOLD: float = Field(default=20.0, description="Horizontal accuracy (meters) treated as localized")
    LOCALIZATION_TIMEOUT_SECONDS: float = Field(default=180.0, description="Localization timeout before the session is terminated")
    FEATURE_ENABLE_GRACE_SECONDS: float = Field(default=3.0, description="Wait for the geospatial mode to take effect")
    ERROR_DISPLAY_SECONDS: float = Field(default=3.0, description="How long a fatal reason is displayed before termination")

    # Platform
    LOCATION_SERVICE_REQUIRED: bool = Field(default=False, description="Require a running location service (iOS)")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.ENVIRONMENT.lower() == "production"

    def get_timestamp(self) -> str:
        """Get current timestamp in ISO format"""
        return datetime.now().isoformat()

    def get_redis_config(self) -> dict:
        """Get Redis configuration"""
        return {
            "decode_responses": True,
            "socket_keepalive": True,
            "health_check_interval": 30
        }


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """Validate configuration settings"""
    config = config or settings
    problems = []

    if config.STORE_BACKEND not in SUPPORTED_STORE_BACKENDS:
        problems.append(f"STORE_BACKEND must be one of {', '.join(SUPPORTED_STORE_BACKENDS)}")

    if config.STORE_BACKEND == "redis" and not config.REDIS_URL:
        problems.append("REDIS_URL is required for the redis backend")

    if config.is_production and not config.API_KEYS:
        problems.append("API_KEYS is required in production")

    if problems:
        raise ValueError(f"Invalid configuration: {'; '.join(problems)}")


def apply_development_overrides():
    """Apply development-specific settings"""
    if settings.is_development and settings.DEBUG:
        settings.LOG_LEVEL = "DEBUG"


# Initialize settings
apply_development_overrides()

# Validate settings on import
try:
    validate_settings()
except ValueError as e:
    if not settings.is_development:
        raise e
    else:
        print(f"⚠️  Development mode: {e}")

# Export settings
__all__ = ["settings", "Settings", "validate_settings"]
