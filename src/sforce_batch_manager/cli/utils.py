# -*- coding: utf-8 -*-

import logging

import click
import yaml

from ..core.client import SalesforceClient
from ..core.errors import SalesforceError, ValidationError
from ..core.utils.config import Configuration
from ..core.utils.environment import credentials_from_env, validate_required_env_vars


def setup_logging(verbose=False, quiet=False):
    """Configure logging for CLI execution."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    # Configure root logger
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True  # Override any existing configuration
    )

    # Reduce noise from external libraries in non-verbose mode
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    if verbose:
        logger = logging.getLogger(__name__)
        logger.debug("CLI logging setup completed")


def _validate_positive_integer_callback(ctx, param, value):
    """Validate that the provided value is a positive integer."""
    if value is not None and value <= 0:
        raise click.BadParameter("Value must be a positive integer.")
    return value


#=======================================================================
# Client Utilities
#=======================================================================

def _create_client(config: Configuration) -> SalesforceClient:
    """
    Create a SalesforceClient from SF_* environment variables.
    Exits if variables are missing or authentication fails.
    """
    creds = credentials_from_env()
    missing_vars = validate_required_env_vars(creds.resolve_flow())
    if missing_vars:
        logging.error(f"Missing required environment variables: {missing_vars}")
        logging.info("Please set these environment variables or create a "
                     ".env file in the current directory with:")
        for var in missing_vars:
            logging.info(f"  {var}=your_value_here")
        raise SystemExit(1)

    try:
        return SalesforceClient(creds, config=config)
    except SalesforceError as e:
        logging.error(f"Error creating Salesforce client: {e}")
        raise SystemExit(1)


#=======================================================================
# Config Command Utilities
#=======================================================================

def _parse_config_value(value: str):
    """Parse a command-line value the way it would read in the YAML file."""
    try:
        return yaml.safe_load(value)
    except yaml.YAMLError:
        return value


def _update_configuration(config: Configuration, key: str, value: str) -> Configuration:
    """Return a new configuration with one key changed. Exits on invalid input."""
    data = config.to_dict()
    if key not in data:
        logging.error(f"Unknown configuration key '{key}'. Valid keys: {', '.join(data)}")
        raise SystemExit(1)
    data[key] = _parse_config_value(value)
    try:
        return Configuration.from_dict(data)
    except (ValidationError, TypeError) as e:
        logging.error(f"Invalid value for '{key}': {e}")
        raise SystemExit(1)


def _display_config(config: Configuration):
    """Display a configuration in a readable format."""
    logging.info("Current configuration:")
    for key, value in config.to_dict().items():
        logging.info(f"  {key}: {value}")
