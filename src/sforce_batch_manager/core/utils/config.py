# -*- coding: utf-8 -*-

"""
Client configuration and its on-disk YAML representation.
"""

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

import platformdirs

from ..errors import ValidationError
from .misc import mask_path, read_yaml, write_yaml


API_VERSION = "v62.0"
BATCH_SIZE_MAX = 200          # sObject Collections / composite hard limit
BULK_BATCH_SIZE_MAX = 10_000  # Bulk API 2.0 records per job used by this client
COMPOSITE_SUBREQUEST_MAX = 25


@dataclass
class Configuration:
    """Tunable client settings. Values are validated on construction."""

    compression_headers: bool = False
    api_version: str = API_VERSION
    batch_size_max: int = BATCH_SIZE_MAX
    bulk_batch_size_max: int = BULK_BATCH_SIZE_MAX
    http_timeout: Optional[float] = None
    validate_authentication: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self):
        if not self.api_version:
            raise ValidationError("API version cannot be empty")
        if not 1 <= self.batch_size_max <= BATCH_SIZE_MAX:
            raise ValidationError(f"batch size max must be between 1 and {BATCH_SIZE_MAX}")
        if not 1 <= self.bulk_batch_size_max <= BULK_BATCH_SIZE_MAX:
            raise ValidationError(f"bulk batch size max must be between 1 and {BULK_BATCH_SIZE_MAX}")
        if self.http_timeout is not None and self.http_timeout <= 0:
            raise ValidationError("HTTP timeout must be greater than 0")

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Configuration":
        """Build a configuration from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logging.warning(f"Ignoring unknown configuration keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


def get_default_config_path() -> Path:
    """Get the platform-specific configuration file path."""
    config_dir = platformdirs.user_config_dir("sforce-batch-manager", "sforce")
    return Path(config_dir) / "config.yaml"


def load_configuration(path: str | Path | None = None) -> Configuration:
    """
    Load the client configuration from a YAML file.

    Args:
        path: Path to the YAML file. Defaults to the platform config path.

    Returns:
        Configuration: Loaded configuration, or defaults if the file is missing.
    """
    path = Path(path) if path else get_default_config_path()
    if not path.exists():
        logging.debug(f"No configuration file at {mask_path(path)}, using defaults")
        return Configuration()
    data = read_yaml(path) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Configuration file {path} must contain a mapping")
    return Configuration.from_dict(data)


def save_configuration(config: Configuration, path: str | Path | None = None) -> Path:
    """Validate and write the configuration as YAML. Returns the path written."""
    config.validate()
    path = Path(path) if path else get_default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    write_yaml(config.to_dict(), path)
    logging.info(f"Saved configuration to {mask_path(path)}")
    return path
