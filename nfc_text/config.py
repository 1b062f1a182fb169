"""Configuration management for the NFC text writer."""

import logging
from typing import Literal, Optional
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .nfc.text_record import normalize_language

logger = logging.getLogger(__name__)


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Uses pydantic-settings for validation and .env file support.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # NFC Configuration
    nfc_interface: Literal["i2c", "spi"] = Field(
        default="i2c",
        description="NFC interface type",
    )
    nfc_i2c_bus: int = Field(
        default=1,
        description="I2C bus number",
    )
    nfc_spi_bus: int = Field(
        default=0,
        description="SPI bus number",
    )
    nfc_spi_device: int = Field(
        default=0,
        description="SPI device number",
    )

    # Text records
    default_language: str = Field(
        default="en",
        description="Language code stored in written text records",
    )

    # Tag handling
    tag_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for a tag in one-shot commands",
    )
    poll_interval: float = Field(
        default=0.5,
        description="Polling interval for watch mode",
    )
    rate_limit_seconds: float = Field(
        default=2.0,
        description="Minimum seconds between handling the same tag in watch mode",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Log file path",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("default_language")
    @classmethod
    def validate_default_language(cls, v: str) -> str:
        """Normalize the language code (blank falls back to 'en')."""
        return normalize_language(v)

    @field_validator("tag_timeout", "poll_interval")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts and intervals must be positive")
        return v

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        if self.log_file:
            log_path = Path(self.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        handlers = []

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(console_handler)

        if self.log_file:
            try:
                file_handler = logging.FileHandler(self.log_file)
                file_handler.setFormatter(logging.Formatter(log_format))
                handlers.append(file_handler)
            except OSError as e:
                logger.warning(f"Could not create log file: {e}")

        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format=log_format,
            handlers=handlers,
            force=True,
        )

        logger.info(f"Logging configured: level={self.log_level}")
        if self.log_file:
            logger.info(f"Log file: {self.log_file}")

    def get_nfc_config(self) -> dict:
        """Get NFC configuration as dictionary."""
        return {
            "interface": self.nfc_interface,
            "i2c_bus": self.nfc_i2c_bus,
            "spi_bus": self.nfc_spi_bus,
            "spi_device": self.nfc_spi_device,
        }

    def __repr__(self) -> str:
        return (
            f"Config(nfc_interface={self.nfc_interface}, "
            f"default_language={self.default_language}, "
            f"log_level={self.log_level})"
        )


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file (default: .env)

    Returns:
        Config instance

    Raises:
        ValueError: If configuration is invalid
    """
    try:
        if env_file:
            config = Config(_env_file=env_file)
        else:
            config = Config()
        logger.debug("Configuration loaded successfully")
        return config
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise


def get_config() -> Config:
    """Get a configuration instance from the environment."""
    return load_config()
