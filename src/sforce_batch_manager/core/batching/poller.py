# -*- coding: utf-8 -*-
"""
Completion poller for Bulk API 2.0 jobs.

Each job is observed by its own worker: it waits one poll interval, fetches
the job status, and repeats until the job reaches a terminal state or the
deadline elapses. wait_for_job_results() fans the jobs out on a thread pool
and returns on the first error (or once every job has succeeded); workers
still running at that point are left to finish on their own deadline.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Tuple

from tenacity import (retry, retry_if_exception, stop_after_attempt,
                      stop_after_delay, wait_exponential)

from ..errors import (BulkJobError, JobTimeoutError, SalesforceAPIError,
                      SalesforceError, TransportError)
from ..models import BulkJobResults, JobState, decode_model
from ..utils.misc import resolve_n_jobs
from .transport import CSV_TYPE, Transport

INGEST_JOB_TYPE = "ingest"
QUERY_JOB_TYPE = "query"

DEFAULT_POLL_INTERVAL = 1.0  # seconds
DEFAULT_DEADLINE = 60.0      # seconds


def is_transient_error(error: BaseException) -> bool:
    """Connectivity failures and 5xx answers are worth another try."""
    if isinstance(error, TransportError):
        return True
    return isinstance(error, SalesforceAPIError) and error.status_code >= 500


retry_on_transient_errors = retry(
    retry=retry_if_exception(is_transient_error),
    wait=wait_exponential(min=1, max=16),
    stop=stop_after_attempt(5),
    reraise=True
)


#=============================================================================
# Job Status
#=============================================================================

def job_uri(job_type: str, job_id: str) -> str:
    return f"/jobs/{job_type}/{job_id}"


@retry_on_transient_errors
def get_job_info(transport: Transport, job_id: str, job_type: str = INGEST_JOB_TYPE) -> BulkJobResults:
    """
    Fetch the current status of a bulk job.

    Args:
        transport: Transport bound to the org owning the job.
        job_id (str): Bulk job id.
        job_type (str): "ingest" or "query".

    Returns:
        BulkJobResults: Job id, state, failure count and error message.
    """
    data = transport.request_json("GET", job_uri(job_type, job_id))
    return decode_model(BulkJobResults, data or {})


def is_bulk_job_done(job: BulkJobResults) -> Tuple[bool, Optional[BulkJobError]]:
    """
    Classify a job status.

    Returns:
        tuple: (done, error). A completed job that reports failed records or
        an error message is done with an error, as are Failed and Aborted jobs.
    """
    if job.state == JobState.JOB_COMPLETE:
        if job.error_message:
            return True, BulkJobError(job.error_message, job_id=job.id)
        if job.number_records_failed > 0:
            return True, BulkJobError(
                f"{job.number_records_failed} records failed in bulk job {job.id}", job_id=job.id
            )
        return True, None
    if job.state == JobState.FAILED:
        return True, BulkJobError(job.error_message or f"bulk job {job.id} failed", job_id=job.id)
    if job.state == JobState.ABORTED:
        return True, BulkJobError("bulk job aborted", job_id=job.id)
    return False, None


def _describe_failed_records(transport: Transport, job: BulkJobResults, error: BulkJobError) -> BulkJobError:
    try:
        response = transport.execute("GET", f"/jobs/ingest/{job.id}/failedResults/", content_type=CSV_TYPE)
    except SalesforceError as e:
        logging.warning(f"Unable to retrieve failed records of bulk job {job.id}: {e}")
        return BulkJobError(
            f"unable to retrieve details about {job.number_records_failed} failed records "
            f"from bulk operation {job.id}",
            job_id=job.id
        )
    return BulkJobError(f"{error}\n{response.text}", job_id=job.id)


#=============================================================================
# Polling
#=============================================================================

def _status_request(end: float):
    """
    get_job_info() with its retry policy clipped to the poll deadline.

    Back-off sleeps never run past `end` and no new attempt starts after it.
    """
    backoff = wait_exponential(min=1, max=16)

    def wait(retry_state):
        return max(0.0, min(backoff(retry_state), end - time.monotonic()))

    return get_job_info.retry_with(
        stop=stop_after_attempt(5) | stop_after_delay(max(0.0, end - time.monotonic())),
        wait=wait
    )


def wait_for_job_result(
        transport: Transport,
        job_id: str,
        job_type: str = INGEST_JOB_TYPE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        deadline: float = DEFAULT_DEADLINE
    ) -> BulkJobResults:
    """
    Poll one job until it reaches a terminal state.

    The first status request is made after one poll interval. A status
    request that keeps failing with transient errors counts as "not done
    yet"; the deadline is a hard ceiling either way.

    Returns:
        BulkJobResults: The final status of a successful job.

    Raises:
        BulkJobError: If the job failed, was aborted or reported failed records.
        JobTimeoutError: If the deadline elapsed first.
    """
    end = time.monotonic() + deadline
    last_error = None
    while True:
        time.sleep(max(0.0, min(poll_interval, end - time.monotonic())))
        try:
            job = _status_request(end)(transport, job_id, job_type)
        except SalesforceError as e:
            if not is_transient_error(e):
                raise
            logging.warning(f"Status of bulk job {job_id} unavailable: {e}")
            last_error = e
        else:
            last_error = None
            done, error = is_bulk_job_done(job)
            if done:
                if error is None:
                    logging.debug(f"Bulk job {job_id} completed ({job.number_records_processed} records)")
                    return job
                if job_type == INGEST_JOB_TYPE and job.number_records_failed > 0 and not job.error_message:
                    error = _describe_failed_records(transport, job, error)
                raise error
            logging.debug(f"Bulk job {job_id} is {job.state.value if job.state else 'unknown'}")
        if time.monotonic() >= end:
            raise JobTimeoutError(job_id, deadline) from last_error


def wait_for_job_results(
        transport: Transport,
        job_ids: List[str],
        job_type: str = INGEST_JOB_TYPE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        deadline: float = DEFAULT_DEADLINE,
        max_workers: int | None = None
    ):
    """
    Wait for several jobs concurrently, one worker per job.

    With the default pool every job is observed from the start, so each one
    gets its full deadline measured from the call.

    Args:
        transport: Shared transport (and credential) used by every worker.
        job_ids (list[str]): Jobs to observe.
        job_type (str): "ingest" or "query".
        poll_interval (float): Seconds between status requests.
        deadline (float): Seconds each job is given to finish.
        max_workers (int): Explicit worker cap. Defaults to one worker per job.

    Raises:
        SalesforceError: The first error reported by any worker. Errors of
            other jobs reported later are not surfaced.
    """
    if not job_ids:
        return

    logging.info(f"Waiting for {len(job_ids)} bulk jobs...")
    workers = resolve_n_jobs(max_workers or -1, len(job_ids), verbose=True)

    executor = ThreadPoolExecutor(max_workers=workers)
    future_to_id = {
        executor.submit(wait_for_job_result, transport, job_id, job_type, poll_interval, deadline): job_id
        for job_id in job_ids
    }
    try:
        for future in as_completed(future_to_id):
            job_id = future_to_id[future]
            error = future.exception()
            if error is not None:
                logging.error(f"Bulk job {job_id} did not succeed: {error}")
                raise error
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    logging.info("All bulk jobs completed successfully.")
