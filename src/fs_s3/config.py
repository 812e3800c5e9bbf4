"""Configuration loading with environment variable substitution."""

import json
import os
import re
from pathlib import Path
from typing import Any

import boto3
import yaml
from botocore.config import Config as BotoConfig
from pydantic import BaseModel, Field, ValidationError

from fs_s3.exceptions import ConfigError
from fs_s3.observability import LogLevel

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ConfigError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class S3Config(BaseModel):
    """S3 client and backend settings."""

    endpoint_url: str | None = None  # For S3-compatible stores and emulators
    region_name: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    force_path_style: bool = False
    max_list_items_per_page: int = Field(default=10000, gt=0, le=10000)
    default_content_type: str = "application/octet-stream"
    link_expiry_seconds: int = Field(default=3600, gt=0)


class LocalConfig(BaseModel):
    """Local filesystem backend settings."""

    poll_period_seconds: float = Field(default=0.1, gt=0)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: LogLevel = LogLevel.INFO
    format: str = "json"  # json | text


class FileServiceConfig(BaseModel):
    """Root configuration for a FileService."""

    s3: S3Config = Field(default_factory=S3Config)
    local: LocalConfig = Field(default_factory=LocalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "FileServiceConfig":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        try:
            with path.open() as f:
                if path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileServiceConfig":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e


def create_s3_client(config: S3Config) -> Any:
    """Create a boto3 S3 client from configuration.

    Credentials left unset fall through to boto3's own resolution chain.
    """
    boto_config = None
    if config.force_path_style:
        boto_config = BotoConfig(s3={"addressing_style": "path"})

    return boto3.client(
        "s3",
        endpoint_url=config.endpoint_url,
        region_name=config.region_name,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        config=boto_config,
    )
