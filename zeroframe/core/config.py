# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Zeroframe Configuration System

Centralized configuration management supporting:
- Environment variables (ZEROFRAME_*)
- Config files (~/.zeroframe/config.yaml, ./.zeroframe.yaml)
- Programmatic defaults
- Pydantic validation
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from zeroframe.core.exceptions import ConfigError, ConfigValidationError

logger = logging.getLogger("zeroframe.config")

WORKSPACES = ("DEV", "UAT", "PROD")


# ============================================================================
# Configuration Models
# ============================================================================


class KernelConfig(BaseModel):
    """Kernel and simulated job execution configuration"""
    model_config = ConfigDict(extra="forbid")

    job_completion_delay_s: float = Field(
        default=2.0, description="Simulated job execution time (seconds)", ge=0
    )
    job_max_attempts: int = Field(
        default=3, description="Attempts before a job fails permanently", ge=1
    )
    job_failure_rate: float = Field(
        default=0.2, description="Probability of a random job failure", ge=0.0, le=1.0
    )
    random_seed: Optional[int] = Field(
        default=None, description="Seed for simulated failures and /dev/random"
    )
    audit_role_denials: bool = Field(
        default=True, description="Write an audit entry when the role check denies a syscall"
    )
    default_org_id: str = Field(default="org-acme", description="Org active at boot")
    default_workspace: str = Field(default="DEV", description="Workspace active at boot")
    capabilities_file: Optional[Path] = Field(
        default=None, description="YAML file replacing the built-in capability table"
    )

    @field_validator("default_workspace")
    @classmethod
    def validate_workspace(cls, v):
        """Validate workspace name"""
        v_upper = v.upper()
        if v_upper not in WORKSPACES:
            raise ValueError(f"Invalid workspace. Must be one of: {list(WORKSPACES)}")
        return v_upper

    @field_validator("capabilities_file", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert strings to Path objects"""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class ObservabilityConfig(BaseModel):
    """Logging configuration"""
    model_config = ConfigDict(extra="forbid")

    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional rotating log file")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator("log_file", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert strings to Path objects"""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class ZeroframeConfig(BaseModel):
    """Complete Zeroframe configuration"""
    model_config = ConfigDict(extra="forbid")

    kernel: KernelConfig = Field(
        default_factory=KernelConfig, description="Kernel configuration"
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )


# ============================================================================
# Configuration Loader
# ============================================================================


class ConfigLoader:
    """Load configuration from multiple sources"""

    @staticmethod
    def load_from_env() -> Dict[str, Any]:
        """
        Load configuration from environment variables

        Values are passed through as strings; model validation coerces them
        and reports bad ones as ConfigValidationError.
        """
        config: Dict[str, Any] = {}

        delay = os.getenv("ZEROFRAME_JOB_DELAY")
        if delay:
            config.setdefault("kernel", {})["job_completion_delay_s"] = delay

        failure_rate = os.getenv("ZEROFRAME_FAILURE_RATE")
        if failure_rate:
            config.setdefault("kernel", {})["job_failure_rate"] = failure_rate

        seed = os.getenv("ZEROFRAME_SEED")
        if seed:
            config.setdefault("kernel", {})["random_seed"] = seed

        audit_denials = os.getenv("ZEROFRAME_AUDIT_ROLE_DENIALS")
        if audit_denials:
            config.setdefault("kernel", {})["audit_role_denials"] = audit_denials

        org = os.getenv("ZEROFRAME_ORG")
        if org:
            config.setdefault("kernel", {})["default_org_id"] = org

        workspace = os.getenv("ZEROFRAME_WORKSPACE")
        if workspace:
            config.setdefault("kernel", {})["default_workspace"] = workspace

        caps_file = os.getenv("ZEROFRAME_CAPABILITIES_FILE")
        if caps_file:
            config.setdefault("kernel", {})["capabilities_file"] = caps_file

        log_level = os.getenv("ZEROFRAME_LOG_LEVEL")
        if log_level:
            config.setdefault("observability", {})["log_level"] = log_level

        log_file = os.getenv("ZEROFRAME_LOG_FILE")
        if log_file:
            config.setdefault("observability", {})["log_file"] = log_file

        return config

    @staticmethod
    def load_from_file(file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file {file_path}", cause=e)

        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {file_path} must contain a mapping",
                details={"found": type(data).__name__},
            )
        return data

    @staticmethod
    def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple configuration dictionaries"""
        result: Dict[str, Any] = {}
        for config in configs:
            for key, value in config.items():
                if (
                    key in result
                    and isinstance(result[key], dict)
                    and isinstance(value, dict)
                ):
                    result[key] = ConfigLoader.merge_configs(result[key], value)
                else:
                    result[key] = value
        return result


# ============================================================================
# Global Configuration Instance
# ============================================================================

_config: Optional[ZeroframeConfig] = None


def get_config() -> ZeroframeConfig:
    """
    Get global Zeroframe configuration

    Configuration is loaded from (in order of precedence):
    1. Explicit file passed to load_config
    2. Environment variables (ZEROFRAME_*)
    3. .zeroframe.yaml in current directory
    4. ~/.zeroframe/config.yaml
    5. Default values
    """
    global _config

    if _config is None:
        _config = load_config()

    return _config


def load_config(
    config_file: Optional[Path] = None, env_override: bool = True
) -> ZeroframeConfig:
    """
    Load configuration from all sources

    Args:
        config_file: Optional specific config file to load
        env_override: Whether environment variables override file config

    Returns:
        ZeroframeConfig instance

    Raises:
        ConfigValidationError: If the merged configuration is invalid
    """
    configs = []

    default_locations = [
        Path.home() / ".zeroframe" / "config.yaml",
        Path.cwd() / ".zeroframe.yaml",
    ]

    for location in default_locations:
        file_config = ConfigLoader.load_from_file(location)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {location}")

    if env_override:
        env_config = ConfigLoader.load_from_env()
        if env_config:
            configs.append(env_config)
            logger.debug("Loaded config from environment")

    if config_file:
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
        configs.append(ConfigLoader.load_from_file(config_file))
        logger.debug(f"Loaded config from {config_file}")

    merged = ConfigLoader.merge_configs(*configs) if configs else {}

    try:
        return ZeroframeConfig(**merged)
    except ValidationError as e:
        raise ConfigValidationError(
            "Config validation failed",
            details={"errors": e.errors(include_url=False)},
            cause=e,
        )


def reload_config(config_file: Optional[Path] = None) -> ZeroframeConfig:
    """Reload global configuration"""
    global _config
    _config = load_config(config_file)
    logger.info("Configuration reloaded")
    return _config


def set_config(config: Optional[ZeroframeConfig]):
    """Install (or clear, with None) the global configuration"""
    global _config
    _config = config
