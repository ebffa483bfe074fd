"""Configuration management with Pydantic validation.

Supports three configuration sources (in priority order):
1. YAML config file
2. Environment variables
3. Default values
"""

import os
from pathlib import Path
from typing import Optional, Literal, Union
import yaml
from pydantic import BaseModel, Field, field_validator

from .protocol.codes import station_address
from .protocol.constants import DEFAULT_READ_TIMEOUT


class SerialConfig(BaseModel):
    """Serial port configuration for the ICSC bus."""

    port: str = Field(
        default="/dev/ttyUSB0",
        description="Serial port device path"
    )
    baudrate: int = Field(
        default=115200,
        description="Baud rate"
    )
    databits: int = Field(
        default=8,
        ge=5,
        le=8,
        description="Data bits"
    )
    parity: Literal["none", "even", "odd"] = Field(
        default="none",
        description="Parity setting"
    )
    stopbits: int = Field(
        default=1,
        ge=1,
        le=2,
        description="Stop bits"
    )

    @property
    def parity_char(self) -> str:
        """Get single-character parity for pyserial."""
        return {"none": "N", "even": "E", "odd": "O"}[self.parity]


class StationConfig(BaseModel):
    """Local station configuration."""

    address: Union[str, int] = Field(
        default="A",
        description="Station address, a single character or 1-255"
    )
    read_timeout: float = Field(
        default=DEFAULT_READ_TIMEOUT,
        gt=0,
        le=60,
        description="Seconds to wait for each byte before the bus counts as idle"
    )

    @field_validator("address", mode="before")
    @classmethod
    def parse_address(cls, v):
        """Accept a single character or a numeric byte value."""
        if isinstance(v, str) and len(v) > 1:
            v = int(v, 0)
        try:
            station_address(v)
        except TypeError as e:
            raise ValueError(str(e)) from e
        return v

    @property
    def address_code(self) -> int:
        """Address as a byte value."""
        return int(station_address(self.address))


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    file: Optional[Path] = Field(
        default=None,
        description="Log file path (optional)"
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )


class AppConfig(BaseModel):
    """Complete application configuration."""

    serial: SerialConfig = Field(
        default_factory=SerialConfig,
        description="Serial port settings"
    )
    station: StationConfig = Field(
        default_factory=StationConfig,
        description="Local station settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )


# Environment variable mapping
ENV_MAPPING = {
    # Serial
    "SERIAL_PORT": ("serial", "port"),
    "SERIAL_BAUDRATE": ("serial", "baudrate", int),

    # Station
    "ICSC_STATION": ("station", "address"),
    "ICSC_READ_TIMEOUT": ("station", "read_timeout", float),

    # Logging
    "LOG_LEVEL": ("logging", "level"),
}


def _get_env_value(env_var: str, mapping: tuple):
    """Get environment variable value with optional type conversion."""
    value = os.environ.get(env_var)
    if value is None:
        return None

    # Apply type conversion if specified
    if len(mapping) > 2:
        converter = mapping[2]
        try:
            return converter(value)
        except (ValueError, TypeError):
            return value
    return value


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables.

    Returns:
        AppConfig with values from environment (or defaults)
    """
    config_dict = {
        "serial": {},
        "station": {},
        "logging": {},
    }

    for env_var, mapping in ENV_MAPPING.items():
        value = _get_env_value(env_var, mapping)
        if value is not None:
            section = mapping[0]
            key = mapping[1]
            config_dict[section][key] = value

    return AppConfig(**config_dict)


def load_config(config_path: str) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r") as f:
        raw_config = yaml.safe_load(f) or {}

    # Support environment variable substitution
    raw_config = _substitute_env_vars(raw_config)

    return AppConfig(**raw_config)


def get_config(config_path: Optional[str] = None) -> AppConfig:
    """Get configuration from config file or environment variables.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Validated AppConfig instance
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            return load_config(config_path)

    return load_config_from_env()


def _substitute_env_vars(config):
    """Recursively substitute environment variables in config values.

    Environment variables are referenced as ${VAR_NAME} or $VAR_NAME.
    """
    if isinstance(config, dict):
        return {k: _substitute_env_vars(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [_substitute_env_vars(item) for item in config]
    elif isinstance(config, str):
        if config.startswith("${") and config.endswith("}"):
            var_name = config[2:-1]
            return os.environ.get(var_name, config)
        elif config.startswith("$") and len(config) > 1:
            var_name = config[1:]
            return os.environ.get(var_name, config)
        return config
    else:
        return config


def create_default_config() -> str:
    """Generate default configuration as YAML string."""
    config = AppConfig()
    return yaml.dump(
        config.model_dump(mode="json", exclude_none=True),
        default_flow_style=False,
        sort_keys=False,
    )


def print_env_help() -> str:
    """Generate help text for environment variables."""
    lines = [
        "Environment Variables:",
        "",
        "  Serial Port:",
        "    SERIAL_PORT          Serial device path (default: /dev/ttyUSB0)",
        "    SERIAL_BAUDRATE      Baud rate (default: 115200)",
        "",
        "  Station:",
        "    ICSC_STATION         Local address, one character or 1-255 (default: A)",
        "    ICSC_READ_TIMEOUT    Seconds to wait for each byte (default: 1.0)",
        "",
        "  Logging:",
        "    LOG_LEVEL            DEBUG, INFO, WARNING, ERROR (default: INFO)",
    ]
    return "\n".join(lines)
