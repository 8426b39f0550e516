"""
SForce Batch Manager - Batched and bulk DML against Salesforce

A toolkit for moving large record sets in and out of Salesforce through the
sObject Collections, Composite and Bulk API 2.0 endpoints. This package
provides both a programmatic API and a command-line interface.

Key Features:
    - Record batching under Salesforce size and sub-request limits
    - Composite multiplexing with per-record success accounting
    - Bulk API 2.0 job lifecycle management and parallel completion polling
    - Cursor-based result pagination, eager or streamed
    - Transparent session refresh (one retry per request)

Package Structure:
    batching: Batch processing operations (partition, composite, jobs, query)
    utils:    Shared utilities (auth, codec, config, environment)

Example Usage:

    Basic Workflow:
        import sforce_batch_manager as sfbm

        creds = sfbm.utils.environment.credentials_from_env()
        client = sfbm.SalesforceClient(creds)

        results = client.insert_composite('Contact', contacts, batch_size=200, all_or_none=False)
        if results.has_errors:
            ...

        job_ids = client.insert_bulk('Contact', contacts, batch_size=10000, wait_for_results=True)
        client.query_bulk_export('SELECT Id, Name FROM Contact', './contacts.csv')

    CLI Usage:
        $ sfbm bulk insert Contact ./contacts.csv --wait
        $ sfbm job-results 750XXXXXXXXXXXX
        $ sfbm query-export "SELECT Id FROM Account" ./accounts.csv

Environment Setup:
    Credentials are read from SF_* environment variables (SF_DOMAIN,
    SF_CONSUMER_KEY, SF_CONSUMER_SECRET, ...). These can be set via .env
    files in the current working directory (.env, .env.local).
"""

__version__ = "0.1.0"

# Load environment on package import
from .core.utils.environment import setup_environment
setup_environment()

# Export core API modules
from . import core
batching = core.batching
utils = core.utils
errors = core.errors
SalesforceClient = core.SalesforceClient
Configuration = core.Configuration
Credentials = core.Credentials

__all__ = [
    '__version__',
    'batching',          # sfbm.batching.*
    'utils',             # sfbm.utils.*
    'errors',            # sfbm.errors.*
    'SalesforceClient',  # sfbm.SalesforceClient()
    'Configuration',
    'Credentials',
]

# Clean up namespace
del setup_environment, core
