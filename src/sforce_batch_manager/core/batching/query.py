# -*- coding: utf-8 -*-
"""
Query results: Bulk API 2.0 query jobs and REST query pagination.

Bulk query results are paged with an opaque cursor sent back in the
Sforce-Locator response header; "null" or an empty value marks the last
page. Results can be collected eagerly into one row list, or pulled one
page at a time with BulkQueryIterator.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import httpx

from ..errors import CodecError, SalesforceError, TransportError, ValidationError
from ..models import BulkQueryJobCreationRequest, ExplainPlan, decode_model
from ..utils.codec import csv_rows, csv_to_records, decode_rows, rows_to_records, write_csv_file
from .jobs import create_bulk_job
from .poller import DEFAULT_DEADLINE, QUERY_JOB_TYPE, wait_for_job_result
from .transport import CSV_TYPE, Transport

LOCATOR_HEADER = "Sforce-Locator"
NUMBER_OF_RECORDS_HEADER = "Sforce-NumberOfRecords"
QUERY_POLL_INTERVAL = 0.5  # seconds


@dataclass
class QueryPage:
    number_of_records: int = 0
    locator: str = ""
    rows: List[List[str]] = field(default_factory=list)


def results_uri(job_id: str) -> str:
    return f"/jobs/query/{job_id}/results"


def read_locator(response: httpx.Response) -> str:
    """Return the next-page cursor, or "" when there are no more pages."""
    locator = response.headers.get(LOCATOR_HEADER, "")
    return "" if locator in ("", "null") else locator


def read_number_of_records(response: httpx.Response) -> int:
    try:
        return int(response.headers.get(NUMBER_OF_RECORDS_HEADER, 0))
    except ValueError:
        return 0


def _fetch_page(transport: Transport, job_id: str, locator: str = "", stream: bool = False) -> httpx.Response:
    params = {"locator": locator} if locator else None
    return transport.execute("GET", results_uri(job_id), content_type=CSV_TYPE, params=params, stream=stream)


#=============================================================================
# Eager collection
#=============================================================================

def get_query_job_results(transport: Transport, job_id: str, locator: str = "") -> QueryPage:
    """Fetch one page of query job results, header row included."""
    response = _fetch_page(transport, job_id, locator)
    return QueryPage(
        number_of_records=read_number_of_records(response),
        locator=read_locator(response),
        rows=csv_rows(response.text),
    )


def collect_query_results(transport: Transport, job_id: str) -> List[List[str]]:
    """
    Collect every page of a query job into one list of rows.

    The first row is the header; header rows of later pages are dropped.
    Fetching stops at the first page without a cursor.
    """
    rows = []
    locator = ""
    page_number = 0
    while True:
        page = get_query_job_results(transport, job_id, locator)
        rows.extend(page.rows if page_number == 0 else page.rows[1:])
        page_number += 1
        logging.debug(f"Query job {job_id}: page {page_number} with {page.number_of_records} records")
        if not page.locator:
            break
        locator = page.locator
    return rows


#=============================================================================
# Streaming iteration
#=============================================================================

class BulkQueryIterator:
    """
    Pull-based iterator over the result pages of a completed query job.

    advance() fetches the next page (closing the previous one first) and
    returns False once there is nothing left or a fetch failed; error then
    holds the failure. decode() maps the rows of the current page. At most
    one page is held at a time and an exhausted iterator cannot be restarted.

    Iterating the object yields the decoded records of each page.
    """

    def __init__(self, transport: Transport, job_id: str, into=None):
        self.transport = transport
        self.job_id = job_id
        self.into = into
        self.locator = ""
        self.number_of_records = 0
        self._response: Optional[httpx.Response] = None
        self._error: Optional[SalesforceError] = None
        self._exhausted = False

    @property
    def error(self) -> Optional[SalesforceError]:
        return self._error

    def advance(self) -> bool:
        if self._exhausted:
            return False
        if self._response is not None:
            self._response.close()
            self._response = None
            if not self.locator:
                self._exhausted = True
                return False
        try:
            response = _fetch_page(self.transport, self.job_id, self.locator, stream=True)
        except SalesforceError as e:
            self._error = e
            self._exhausted = True
            return False
        self._response = response
        self.number_of_records = read_number_of_records(response)
        self.locator = read_locator(response)
        return True

    def decode(self, into=None) -> list:
        """
        Decode the current page into records.

        Args:
            into: None for dicts, or a pydantic model / dataclass type.
                Defaults to the type given to the constructor.
        """
        if self._response is None:
            raise ValidationError("no current page, call advance() first")
        try:
            self._response.read()
            records = csv_to_records(self._response.text)
            return decode_rows(records, into or self.into)
        except httpx.HTTPError as e:
            self._error = TransportError(f"reading query results of job {self.job_id} failed: {e}")
            raise self._error from e
        except CodecError as e:
            self._error = e
            raise

    def close(self):
        if self._response is not None:
            self._response.close()
            self._response = None
        self._exhausted = True

    def __iter__(self):
        while self.advance():
            yield self.decode()
        if self._error is not None:
            raise self._error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


#=============================================================================
# Query jobs
#=============================================================================

def create_query_job(transport: Transport, query: str, deadline: float = DEFAULT_DEADLINE) -> str:
    """Create a bulk query job and wait until its results are available."""
    job = create_bulk_job(transport, BulkQueryJobCreationRequest(query=query), QUERY_JOB_TYPE)
    wait_for_job_result(transport, job.id, QUERY_JOB_TYPE, QUERY_POLL_INTERVAL, deadline)
    return job.id


def query_bulk_export(transport: Transport, query: str, file_path: str | Path, deadline: float = DEFAULT_DEADLINE) -> Path:
    """
    Run a bulk query and write every result row to a CSV file.

    Returns:
        Path: The written file.
    """
    job_id = create_query_job(transport, query, deadline)
    rows = collect_query_results(transport, job_id)
    return write_csv_file(rows, file_path)


def query_bulk_records(transport: Transport, query: str, into=None, deadline: float = DEFAULT_DEADLINE) -> list:
    """
    Run a bulk query and decode every result row in memory.

    Args:
        query (str): SOQL query.
        into: None for dicts of strings, or a pydantic model / dataclass type.
    """
    job_id = create_query_job(transport, query, deadline)
    return decode_rows(rows_to_records(collect_query_results(transport, job_id)), into)


def query_bulk_iterator(transport: Transport, query: str, into=None, deadline: float = DEFAULT_DEADLINE) -> BulkQueryIterator:
    """Run a bulk query and return an iterator over its result pages."""
    return BulkQueryIterator(transport, create_query_job(transport, query, deadline), into=into)


#=============================================================================
# REST queries
#=============================================================================

def perform_query(transport: Transport, query: str, into=None) -> list:
    """
    Run a SOQL query through the REST API, following nextRecordsUrl.

    Args:
        query (str): SOQL query.
        into: None for dicts, or a pydantic model / dataclass type.
    """
    prefix = f"/services/data/{transport.config.api_version}"
    uri, params = "/query/", {"q": query}
    records = []
    while True:
        data = transport.request_json("GET", uri, params=params) or {}
        records.extend(data.get("records") or [])
        next_url = data.get("nextRecordsUrl")
        if data.get("done", True) or not next_url:
            break
        uri, params = next_url.removeprefix(prefix), None
    logging.debug(f"Query returned {len(records)} records")
    return decode_rows(records, into)


def explain(transport: Transport, query: str) -> List[ExplainPlan]:
    """Return the query plans Salesforce would consider for a SOQL query."""
    data = transport.request_json("GET", "/query/", params={"explain": query}) or {}
    return [decode_model(ExplainPlan, plan) for plan in data.get("plans") or []]
