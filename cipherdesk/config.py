"""Application configuration."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from CIPHERDESK_* environment variables."""

    # Environment
    environment: str = "development"  # development, staging, production

    # Logging
    log_level: str = "WARNING"
    log_json: bool = False  # JSON lines instead of the colored human format

    # Live conversion
    debounce_ms: int = 300  # Delay between the last keystroke and conversion
    # Show crypto/format errors even while the user is still typing
    surface_errors_while_typing: bool = False

    # Generation defaults
    default_aes_key_size: int = 256  # 128, 192, 256
    default_aes_mode: str = "GCM"  # GCM, CBC
    default_rsa_key_size: int = 2048  # 2048, 3072, 4096

    model_config = SettingsConfigDict(
        env_prefix="CIPHERDESK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("debounce_ms")
    @classmethod
    def _check_debounce(cls, value: int) -> int:
        if value < 0:
            raise ValueError("debounce_ms must not be negative")
        return value

    @field_validator("default_aes_key_size")
    @classmethod
    def _check_aes_key_size(cls, value: int) -> int:
        if value not in (128, 192, 256):
            raise ValueError(f"AES key size must be 128, 192, or 256 bits, got {value}")
        return value

    @field_validator("default_aes_mode")
    @classmethod
    def _check_aes_mode(cls, value: str) -> str:
        mode = value.upper()
        if mode not in ("GCM", "CBC"):
            raise ValueError(f"AES mode must be GCM or CBC, got {value}")
        return mode

    @field_validator("default_rsa_key_size")
    @classmethod
    def _check_rsa_key_size(cls, value: int) -> int:
        if value not in (2048, 3072, 4096):
            raise ValueError(f"RSA key size must be 2048, 3072, or 4096 bits, got {value}")
        return value

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
