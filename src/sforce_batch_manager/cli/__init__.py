"""
Command-line interface for SForce Batch Manager.

Command Categories:
    Bulk Jobs:
        - bulk: Submit a CSV file as Bulk API 2.0 ingest jobs
        - job-results: Show the outcome of an ingest job

    Queries:
        - query-export: Export bulk query results to CSV

    Configuration:
        - config show: Display the client configuration
        - config set: Change one configuration value

Environment Requirements:
    SF_* variables for one of the supported grant flows (see `sfbm --help`).

Example Workflow:
    $ sfbm bulk upsert Account ./accounts.csv --external-id External_Id__c --wait
    $ sfbm job-results 750XXXXXXXXXXXXXXX --failed-output ./failed.csv
    $ sfbm query-export "SELECT Id, Name FROM Account" ./accounts_export.csv
    $ sfbm config set compression_headers true
"""

from .cli import cli

__all__ = [
    'cli',  # Main CLI interface (Click command group)
]
