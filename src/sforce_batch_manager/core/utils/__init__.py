"""
Shared utilities for SForce Batch Manager.

Submodules:
    auth:        Credentials, grant flows and session refresh
    codec:       Record normalisation and CSV conversion
    config:      Client configuration and its YAML file
    environment: Environment configuration (internal)
    misc:        Internal utilities (internal)
"""

from . import auth
from . import codec
from . import config
from . import environment

__all__ = [
    'auth',
    'codec',
    'config',
    'environment',
]

# Internal modules not exported:
# - misc (path and YAML helpers)
