# -*- coding: utf-8 -*-

"""
Environment configuration management.
"""

import os
import logging
from pathlib import Path
from typing import Optional

import dotenv

from .auth import AuthFlow, Credentials


# Credentials field -> environment variable
ENV_VARS = {
    'domain': 'SF_DOMAIN',
    'username': 'SF_USERNAME',
    'password': 'SF_PASSWORD',
    'security_token': 'SF_SECURITY_TOKEN',
    'consumer_key': 'SF_CONSUMER_KEY',
    'consumer_secret': 'SF_CONSUMER_SECRET',
    'consumer_rsa_pem': 'SF_CONSUMER_RSA_PEM',
    'access_token': 'SF_ACCESS_TOKEN',
}

REQUIRED_ENV_VARS = {
    AuthFlow.USERNAME_PASSWORD: ['SF_DOMAIN', 'SF_CONSUMER_KEY', 'SF_CONSUMER_SECRET',
                                 'SF_USERNAME', 'SF_PASSWORD', 'SF_SECURITY_TOKEN'],
    AuthFlow.CLIENT_CREDENTIALS: ['SF_DOMAIN', 'SF_CONSUMER_KEY', 'SF_CONSUMER_SECRET'],
    AuthFlow.ACCESS_TOKEN: ['SF_DOMAIN', 'SF_ACCESS_TOKEN'],
    AuthFlow.JWT: ['SF_DOMAIN', 'SF_USERNAME', 'SF_CONSUMER_KEY', 'SF_CONSUMER_RSA_PEM'],
}


def load_environment_variables(env_file: Optional[str] = None, verbose: bool = False) -> bool:
    """
    Load environment variables from .env file with smart path resolution.

    Args:
        env_file: Specific .env file path. If None, searches for .env files.
        verbose: Whether to log environment loading details.

    Returns:
        True if .env file was found and loaded, False otherwise.
    """
    if env_file:
        env_path = Path(env_file)
        if env_path.exists():
            dotenv.load_dotenv(env_path)
            if verbose:
                logging.debug(f"Loaded environment from: {env_path}")
            return True
        if verbose:
            logging.warning(f"Specified .env file not found: {env_path}")
        return False

    search_paths = [
        Path.cwd() / '.env.local',
        Path.cwd() / '.env',
    ]

    for env_path in search_paths:
        if env_path.exists():
            dotenv.load_dotenv(env_path)
            if verbose:
                logging.debug(f"Loaded environment from: {env_path}")
            return True

    if verbose:
        logging.debug("No .env file found in search paths")
    return False


def credentials_from_env() -> Credentials:
    """Build Credentials from SF_* environment variables (unset ones stay empty)."""
    values = {field: os.getenv(var, '') for field, var in ENV_VARS.items()}
    pem_path = values['consumer_rsa_pem']
    # SF_CONSUMER_RSA_PEM may hold either the key itself or a path to it
    if pem_path and not pem_path.lstrip().startswith('-----BEGIN') and Path(pem_path).is_file():
        values['consumer_rsa_pem'] = Path(pem_path).read_text(encoding='utf-8')
    return Credentials(**values)


def validate_required_env_vars(flow: AuthFlow | None = None) -> list:
    """
    Validate that the environment variables needed by a grant flow are set.

    Args:
        flow: Flow to check. If None, the flow is inferred from the variables
            that are set, and every variable of the most likely flow is
            required when none can be inferred.

    Returns:
        List of missing environment variables (empty if all present)
    """
    if flow is None:
        flow = credentials_from_env().resolve_flow() or AuthFlow.CLIENT_CREDENTIALS
    return [var for var in REQUIRED_ENV_VARS[flow] if not os.getenv(var)]


def setup_environment(verbose: bool = False, env_file: Optional[str] = None) -> bool:
    """
    Set up environment for the package.

    Returns:
        True if environment setup was successful
    """
    env_loaded = load_environment_variables(env_file, verbose)

    if verbose and not env_loaded:
        logging.debug("No .env file loaded. Relying on system environment variables.")
        logging.debug("Expected .env file locations:")
        logging.debug("  - ./.env (current directory)")
        logging.debug("  - ./.env.local (current directory)")

    return True  # .env is optional
