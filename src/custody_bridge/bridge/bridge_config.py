"""
Deployment configuration for the custody bridge.

Values can come from code, a dict, a JSON file, or ``CUSTODY_BRIDGE_*``
environment variables. Environment variables win and are recorded in
``environment_overrides``.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..crypto import normalize_address, normalize_addresses
from ..errors import BridgeError, ConfigurationError
from ..logging import LogConfig, LogLevel


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_int_list(value: str) -> List[int]:
    return [int(item) for item in _parse_list(value)]


ENV_MAPPINGS: Dict[str, tuple] = {
    "CUSTODY_BRIDGE_VALIDATORS": ("validators", _parse_list),
    "CUSTODY_BRIDGE_POWERS": ("powers", _parse_int_list),
    "CUSTODY_BRIDGE_TOTAL_VALIDATOR_POWER": ("total_validator_power", int),
    "CUSTODY_BRIDGE_POWER_THRESHOLD": ("power_threshold", int),
    "CUSTODY_BRIDGE_ASSET_ADDRESS": ("asset_address", str),
    "CUSTODY_BRIDGE_BRIDGE_ADDRESS": ("bridge_address", str),
    "CUSTODY_BRIDGE_LOG_LEVEL": ("log_level", str),
    "CUSTODY_BRIDGE_LOG_FORMAT": ("log_format", str),
}


@dataclass
class BridgeConfig:
    """Configuration for deploying a custody bridge."""

    validators: List[str] = field(default_factory=list)
    powers: List[int] = field(default_factory=list)
    total_validator_power: int = 0
    power_threshold: int = 0
    asset_address: Optional[str] = None
    bridge_address: Optional[str] = None

    # Logging
    log_level: str = "info"
    log_format: str = "text"

    environment_overrides: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self._apply_environment_overrides()
        self._validate()

    def _apply_environment_overrides(self) -> None:
        """Apply environment variable overrides."""
        for env_var, (attr_name, parser) in ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is None:
                continue
            try:
                value = parser(env_value)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(
                    f"Invalid environment variable {env_var}={env_value}: {e}",
                    config_key=env_var,
                    config_value=env_value,
                    cause=e,
                )
            setattr(self, attr_name, value)
            self.environment_overrides[env_var] = value

    def _validate(self) -> None:
        for name in ("total_validator_power", "power_threshold"):
            self._require_uint(name, getattr(self, name))
        for index, power in enumerate(self.powers):
            self._require_uint(f"powers[{index}]", power)

        self.validators = list(self._convert("validators", normalize_addresses, self.validators))
        self.powers = list(self.powers)
        if self.asset_address is not None:
            self.asset_address = self._convert(
                "asset_address", normalize_address, self.asset_address
            )
        if self.bridge_address is not None:
            self.bridge_address = self._convert(
                "bridge_address", normalize_address, self.bridge_address
            )

        self._convert("log_level", LogLevel.parse, self.log_level)
        if self.log_format not in ("text", "json"):
            raise ConfigurationError(
                f"Unsupported log format: {self.log_format}",
                config_key="log_format",
                config_value=self.log_format,
            )

    @staticmethod
    def _require_uint(name: str, value: Any) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ConfigurationError(
                f"{name} must be a non-negative integer, got {value!r}",
                config_key=name,
                config_value=value,
            )

    @staticmethod
    def _convert(name: str, converter: Callable[..., Any], value: Any) -> Any:
        try:
            return converter(value)
        except (BridgeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid value for {name}: {value!r}",
                config_key=name,
                config_value=value,
                cause=e,
            )

    def to_log_config(self) -> LogConfig:
        return LogConfig(
            name="custody_bridge",
            level=LogLevel.parse(self.log_level),
            format_type=self.log_format,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "validators": list(self.validators),
            "powers": list(self.powers),
            "total_validator_power": self.total_validator_power,
            "power_threshold": self.power_threshold,
            "asset_address": self.asset_address,
            "bridge_address": self.bridge_address,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "environment_overrides": dict(self.environment_overrides),
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "BridgeConfig":
        """Create configuration from dictionary."""
        known = {
            key: value
            for key, value in config_dict.items()
            if key in cls.__dataclass_fields__ and key != "environment_overrides"
        }
        return cls(**known)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "BridgeConfig":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot load bridge configuration from {path}: {e}",
                config_key="path",
                config_value=str(path),
                cause=e,
            )
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Bridge configuration in {path} must be a JSON object",
                config_key="path",
                config_value=str(path),
            )
        return cls.from_dict(data)

    def __str__(self) -> str:
        return (
            f"BridgeConfig(validators={len(self.validators)}, "
            f"total_validator_power={self.total_validator_power}, "
            f"power_threshold={self.power_threshold})"
        )
