# -*- coding: utf-8 -*-
"""
This module drives Bulk API 2.0 ingest jobs through their lifecycle:
creation, CSV upload, hand-over to Salesforce (UploadComplete) and
retrieval of the record results once a job is complete.

A record set larger than one batch is split into one job per batch. Batches
are submitted strictly in sequence; the first failure stops the submission
and is raised as a BulkSubmissionError that lists the jobs already created.
"""

import logging
from pathlib import Path
from typing import List

from tqdm.auto import tqdm

from ..errors import BulkJobError, BulkSubmissionError, SalesforceError, ValidationError
from ..models import (ALLOWED_TRANSITIONS, BulkJob, BulkJobCreationRequest,
                      BulkJobResults, JobState, decode_model)
from ..utils.codec import csv_to_records, normalize_records, read_csv_file, records_to_csv
from ..utils.config import BULK_BATCH_SIZE_MAX
from ..utils.misc import mask_path
from .partition import partition, validate_batch_size
from .poller import (DEFAULT_DEADLINE, DEFAULT_POLL_INTERVAL, INGEST_JOB_TYPE,
                     get_job_info, wait_for_job_results)
from .transport import CSV_TYPE, Transport

INSERT_OPERATION = "insert"
UPDATE_OPERATION = "update"
UPSERT_OPERATION = "upsert"
DELETE_OPERATION = "delete"
QUERY_OPERATION = "query"

INGEST_OPERATIONS = (INSERT_OPERATION, UPDATE_OPERATION, UPSERT_OPERATION, DELETE_OPERATION)


#=============================================================================
# Job Lifecycle
#=============================================================================

def create_bulk_job(transport: Transport, job_request, job_type: str = INGEST_JOB_TYPE) -> BulkJob:
    """
    Create a bulk job.

    Args:
        transport: Transport bound to the target org.
        job_request: BulkJobCreationRequest or BulkQueryJobCreationRequest.
        job_type (str): "ingest" or "query".

    Returns:
        BulkJob: The created job. Ingest jobs are always Open.

    Raises:
        BulkJobError: If the job has no id or an ingest job is not Open.
    """
    data = transport.request_json("POST", f"/jobs/{job_type}", job_request.to_payload())
    job = decode_model(BulkJob, data or {})
    if not job.id:
        raise BulkJobError(f"error creating bulk {job_type} job: id does not exist")
    if job_type == INGEST_JOB_TYPE and job.state != JobState.OPEN:
        raise BulkJobError(
            "error creating bulk data job: id does not exist or job closed prematurely", job_id=job.id
        )
    logging.info(f"Bulk {job_type} job created with ID: {job.id}")
    return job


def update_job_state(transport: Transport, job: BulkJob, state: JobState) -> BulkJob:
    """
    Request a state transition for an ingest job.

    Only Open -> UploadComplete and {Open, UploadComplete, InProgress} -> Aborted
    can be requested. Terminal states are never left.

    Raises:
        ValidationError: If the transition is not allowed (no request is sent).
    """
    state = JobState(state)
    if job.state is None or job.state.is_terminal or state not in ALLOWED_TRANSITIONS.get(job.state, ()):
        current = job.state.value if job.state else "unknown"
        raise ValidationError(f"bulk job {job.id} cannot move from {current} to {state.value}")
    transport.request_json("PATCH", f"/jobs/ingest/{job.id}", {"state": state.value})
    job.state = state
    logging.debug(f"Bulk job {job.id} moved to {state.value}")
    return job


def upload_job_data(transport: Transport, job: BulkJob, data: str) -> BulkJob:
    """
    Upload CSV data to an Open job and mark the upload complete.

    If the upload fails the job is aborted on a best-effort basis. A failed
    abort is logged and noted on the upload error, which is always the one
    raised.

    Returns:
        BulkJob: The job, now UploadComplete.
    """
    if job.state != JobState.OPEN:
        raise ValidationError(f"bulk job {job.id} is not Open, data cannot be uploaded")
    try:
        transport.execute("PUT", f"/jobs/ingest/{job.id}/batches", body=data, content_type=CSV_TYPE)
    except SalesforceError as upload_error:
        logging.error(f"Upload to bulk job {job.id} failed: {upload_error}")
        try:
            update_job_state(transport, job, JobState.ABORTED)
        except SalesforceError as abort_error:
            logging.warning(f"Unable to abort bulk job {job.id}: {abort_error}")
            upload_error.add_note(f"aborting bulk job {job.id} also failed: {abort_error}")
        raise
    return update_job_state(transport, job, JobState.UPLOAD_COMPLETE)


#=============================================================================
# Submission
#=============================================================================

def submit_bulk_job(
        transport: Transport,
        object_name: str,
        operation: str,
        records,
        batch_size: int,
        external_id_field: str = "",
        assignment_rule_id: str = "",
        wait_for_results: bool = False,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        deadline: float = DEFAULT_DEADLINE
    ) -> List[str]:
    """
    Submit records as one bulk ingest job per batch.

    Args:
        transport: Transport bound to the target org.
        object_name (str): sObject API name.
        operation (str): insert, update, upsert or delete.
        records: Mappings, pydantic models or dataclass instances.
        batch_size (int): Records per job.
        external_id_field (str): Required for upsert.
        assignment_rule_id (str): Optional assignment rule for Case/Lead.
        wait_for_results (bool): Poll every job until it is terminal.
        poll_interval (float): Seconds between status requests.
        deadline (float): Seconds each job is given to finish.

    Returns:
        list[str]: Ids of the created jobs, in batch order.

    Raises:
        ValidationError: On bad arguments, before any job is created.
        BulkSubmissionError: If a batch could not be submitted, or a job did
            not succeed while waiting. Its job_ids lists the jobs created.
    """
    if operation not in INGEST_OPERATIONS:
        raise ValidationError(f"unsupported bulk operation: {operation}")
    if operation == UPSERT_OPERATION and not external_id_field:
        raise ValidationError("external id field name is required for upsert")
    validate_batch_size(batch_size, BULK_BATCH_SIZE_MAX)

    batches = partition(normalize_records(records), batch_size)
    logging.info(f"Submitting {len(batches)} bulk {operation} jobs for {object_name}")

    job_ids = []
    for i, batch in enumerate(tqdm(batches, desc=f"Submitting {operation} jobs", unit="job")):
        request = BulkJobCreationRequest(
            object=object_name,
            operation=operation,
            external_id_field_name=external_id_field or None,
            assignment_rule_id=assignment_rule_id or None,
        )
        try:
            job = create_bulk_job(transport, request)
            job_ids.append(job.id)
            upload_job_data(transport, job, records_to_csv(list(batch)))
        except SalesforceError as e:
            logging.error(f"Bulk submission stopped at batch {i + 1} of {len(batches)}: {e}")
            raise BulkSubmissionError(
                f"bulk {operation} of {object_name} stopped at batch {i + 1} of {len(batches)}: {e}",
                job_ids=job_ids
            ) from e

    if wait_for_results:
        try:
            wait_for_job_results(transport, job_ids, INGEST_JOB_TYPE, poll_interval, deadline)
        except SalesforceError as e:
            raise BulkSubmissionError(f"bulk {operation} of {object_name} failed: {e}", job_ids=job_ids) from e

    return job_ids


def submit_bulk_job_from_file(
        transport: Transport,
        object_name: str,
        operation: str,
        file_path: str | Path,
        batch_size: int,
        **kwargs
    ) -> List[str]:
    """Read records from a CSV file and submit them with submit_bulk_job()."""
    records = read_csv_file(file_path)
    if not records:
        raise ValidationError(f"no records found in {mask_path(file_path)}")
    return submit_bulk_job(transport, object_name, operation, records, batch_size, **kwargs)


#=============================================================================
# Job Results
#=============================================================================

def get_job_records(transport: Transport, job_id: str, kind: str) -> list:
    """Fetch the successfulResults or failedResults of an ingest job as records."""
    response = transport.execute("GET", f"/jobs/ingest/{job_id}/{kind}/", content_type=CSV_TYPE)
    return csv_to_records(response.text)


def get_job_results(transport: Transport, job_id: str) -> BulkJobResults:
    """
    Fetch the status of an ingest job and, once complete, its record results.

    Returns:
        BulkJobResults: Status, with successful_records and failed_records
        populated when the job is JobComplete.
    """
    job = get_job_info(transport, job_id, INGEST_JOB_TYPE)
    if job.state != JobState.JOB_COMPLETE:
        logging.info(f"Bulk job {job_id} is {job.state.value if job.state else 'unknown'}, no record results yet")
        return job
    return job.model_copy(update={
        "successful_records": get_job_records(transport, job_id, "successfulResults"),
        "failed_records": get_job_records(transport, job_id, "failedResults"),
    })
