# -*- coding: utf-8 -*-

import sys
import click
import logging

from ..core.batching.jobs import INGEST_OPERATIONS, UPSERT_OPERATION
from ..core.batching.poller import DEFAULT_DEADLINE
from ..core.errors import BulkSubmissionError, SalesforceError
from ..core.utils.codec import write_csv_file
from ..core.utils.config import (
    BULK_BATCH_SIZE_MAX,
    load_configuration,
    save_configuration,
    get_default_config_path,
)
from ..core.utils.misc import mask_path
from .utils import (
    setup_logging,
    _validate_positive_integer_callback,
    _create_client,
    _update_configuration,
    _display_config,
)


@click.group()
@click.option(
    '-v', '--verbose', is_flag=True,
    help='Enable verbose (DEBUG) logging'
)
@click.option(
    '-q', '--quiet', is_flag=True,
    help='Only show warnings and errors'
)
@click.option(
    '--config', 'config_path', type=click.Path(dir_okay=False), default=None,
    help='Path to the YAML configuration file. Defaults to the user config directory.'
)
@click.pass_context
def cli(ctx, verbose, quiet, config_path):
    """
    SForce Batch Manager CLI - Batched and bulk DML against Salesforce.

    Submit CSV files as Bulk API 2.0 jobs, inspect job results and export
    bulk query results to CSV.

    \b
    Credentials are read from environment variables (or a .env file):
    - SF_DOMAIN, SF_CONSUMER_KEY, SF_CONSUMER_SECRET (client credentials)
    - + SF_USERNAME, SF_PASSWORD, SF_SECURITY_TOKEN (username-password)
    - SF_DOMAIN, SF_USERNAME, SF_CONSUMER_KEY, SF_CONSUMER_RSA_PEM (JWT)
    - SF_DOMAIN, SF_ACCESS_TOKEN (pre-issued token)
    """
    # Set up logging first
    setup_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path

    # Skip checks if --help/-h is requested
    if any(arg in sys.argv for arg in ['--help', '-h']):
        return

    try:
        ctx.obj['config'] = load_configuration(config_path)
    except SalesforceError as e:
        logging.error(f"Error loading configuration: {e}")
        raise SystemExit(1)


@cli.command()
@click.argument('operation', type=click.Choice(INGEST_OPERATIONS))
@click.argument('object_name')
@click.argument('csv_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--batch-size', type=int, default=BULK_BATCH_SIZE_MAX,
    callback=_validate_positive_integer_callback,
    help=f'Records per bulk job. Default is {BULK_BATCH_SIZE_MAX}.'
)
@click.option(
    '--external-id', type=str, default='',
    help='External id field name. Required for upsert.'
)
@click.option(
    '--wait', is_flag=True, default=False,
    help='Wait until every job reaches a terminal state.'
)
@click.option(
    '--deadline', type=float, default=DEFAULT_DEADLINE,
    help=f'Seconds each job is given to finish when waiting. Default is {DEFAULT_DEADLINE:g}.'
)
@click.pass_context
def bulk(ctx, operation, object_name, csv_file, batch_size, external_id, wait, deadline):
    """
    Submit a CSV file as Bulk API 2.0 ingest jobs.

    \b
    OPERATION:   insert, update, upsert or delete
    OBJECT_NAME: sObject API name (e.g. Account, My_Object__c)
    CSV_FILE:    CSV file with a header row of field names
    """
    if operation == UPSERT_OPERATION and not external_id:
        raise click.UsageError("--external-id is required for upsert.")

    client = _create_client(ctx.obj['config'])
    logging.info(f"Submitting {mask_path(csv_file)} as bulk {operation} of {object_name}...")
    try:
        with client:
            job_ids = client.submit_bulk_file(
                operation, object_name, csv_file, batch_size, wait,
                external_id_field=external_id, deadline=deadline
            )
    except BulkSubmissionError as e:
        logging.error(f"Bulk {operation} failed: {e}")
        if e.job_ids:
            logging.info(f"Jobs created before the failure: {', '.join(e.job_ids)}")
        raise SystemExit(1)
    except SalesforceError as e:
        logging.error(f"Bulk {operation} failed: {e}")
        raise SystemExit(1)

    for job_id in job_ids:
        click.echo(job_id)
    logging.info(f"{len(job_ids)} bulk jobs submitted{' and completed' if wait else ''}.")


@cli.command('job-results')
@click.argument('job_id')
@click.option(
    '--failed-output', type=click.Path(dir_okay=False), default=None,
    help='Write the failed records of a completed job to this CSV file.'
)
@click.pass_context
def job_results(ctx, job_id, failed_output):
    """
    Show the status and record counts of a bulk ingest job.

    \b
    JOB_ID: Id of the bulk job (returned by the 'bulk' command).
    """
    client = _create_client(ctx.obj['config'])
    try:
        with client:
            job = client.get_job_results(job_id)
    except SalesforceError as e:
        logging.error(f"Unable to get results of job {job_id}: {e}")
        raise SystemExit(1)

    logging.info(f"Job {job.id}: {job.state.value if job.state else 'unknown'}")
    logging.info(f"  Records processed: {job.number_records_processed}")
    logging.info(f"  Records failed: {job.number_records_failed}")
    if job.error_message:
        logging.error(f"  Error: {job.error_message}")

    if failed_output:
        if job.failed_records is None:
            logging.warning("Job is not complete, no failed records to write.")
            return
        rows = []
        if job.failed_records:
            header = list(job.failed_records[0])
            rows = [header] + [[str(r.get(h, '')) for h in header] for r in job.failed_records]
        write_csv_file(rows, failed_output)


@cli.command('query-export')
@click.argument('query')
@click.argument('output_csv', type=click.Path(dir_okay=False))
@click.pass_context
def query_export(ctx, query, output_csv):
    """
    Run a SOQL query as a bulk query job and save the results to CSV.

    \b
    QUERY:      SOQL query, quoted.
    OUTPUT_CSV: Destination file. Parent folders are created if needed.
    """
    client = _create_client(ctx.obj['config'])
    try:
        with client:
            path = client.query_bulk_export(query, output_csv)
    except SalesforceError as e:
        logging.error(f"Bulk query failed: {e}")
        raise SystemExit(1)
    logging.info(f"Query results saved to {mask_path(path)}")


#=======================================================================
# Configuration
#=======================================================================

@cli.group()
def config():
    """Show or change the client configuration."""


@config.command('show')
@click.pass_context
def config_show(ctx):
    """Display the current configuration."""
    path = ctx.obj['config_path'] or get_default_config_path()
    logging.info(f"Configuration file: {mask_path(path)}")
    _display_config(ctx.obj['config'])


@config.command('set')
@click.argument('key')
@click.argument('value')
@click.pass_context
def config_set(ctx, key, value):
    """
    Set one configuration value and save the file.

    \b
    KEY:   compression_headers, api_version, batch_size_max,
           bulk_batch_size_max, http_timeout or validate_authentication
    VALUE: New value, parsed as YAML (e.g. true, 30, null).
    """
    updated = _update_configuration(ctx.obj['config'], key, value)
    save_configuration(updated, ctx.obj['config_path'])
    _display_config(updated)
