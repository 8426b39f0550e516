"""
Core functionality for SForce Batch Manager.

Architecture:
    batching/   - Batch processing operations
      ├── partition/   - Record batching under size and count limits
      ├── transport/   - Signed requests with one-shot session refresh
      ├── collections/ - sObject Collections batched DML
      ├── composite/   - Composite multiplexing
      ├── jobs/        - Bulk job lifecycle and submission
      ├── poller/      - Parallel job completion polling
      └── query/       - Paginated and streamed query results

    utils/      - Shared utilities and infrastructure
      ├── auth/        - OAuth grant flows and refresh
      ├── codec/       - Record <-> CSV conversion
      ├── config/      - Client configuration (YAML)
      ├── environment/ - .env and SF_* variables (internal)
      └── misc/        - General utilities (internal)

    errors      - Exception hierarchy
    models      - Wire models
    client      - SalesforceClient facade
"""

from . import batching
from . import utils
from . import errors
from . import models

from .client import SalesforceClient
from .utils.config import Configuration
from .utils.auth import Credentials

__all__ = [
    'batching',
    'utils',
    'errors',
    'models',
    'SalesforceClient',
    'Configuration',
    'Credentials',
]
