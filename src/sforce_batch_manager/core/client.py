# -*- coding: utf-8 -*-
"""
High-level Salesforce client.

SalesforceClient wires an Authenticator and a Transport together, validates
batch sizes against the configured ceilings, and exposes the collection,
composite, bulk and query operations of the batching package.
"""

import logging
from pathlib import Path

import httpx

from .batching import collections, composite, jobs, query, sobjects
from .batching.query import BulkQueryIterator
from .batching.partition import validate_batch_size, validate_number_of_subrequests
from .batching.transport import JSON_TYPE, Transport
from .errors import SalesforceAPIError, ValidationError
from .models import BulkJobResults, SalesforceResult, SalesforceResults
from .utils.auth import AuthFlow, Authenticator, Credentials
from .utils.codec import normalize_records
from .utils.config import Configuration


class SalesforceClient:
    """
    Entry point for batched and bulk DML against one Salesforce org.

    Args:
        credentials (Credentials): Fields selecting one grant flow.
        config (Configuration): Client settings. Defaults to Configuration().
        http_client (httpx.Client): Shared HTTP client, mostly for tests.
    """

    def __init__(self, credentials: Credentials, config: Configuration | None = None, http_client: httpx.Client | None = None):
        self.config = config or Configuration()
        http_client = http_client or httpx.Client(timeout=self.config.http_timeout)
        self.auth = Authenticator.from_credentials(credentials, http_client=http_client)
        self.transport = Transport(self.auth, self.config, http_client=http_client)
        if self.auth.flow == AuthFlow.ACCESS_TOKEN and self.config.validate_authentication:
            self._validate_session()

    def _validate_session(self):
        try:
            self.transport.execute("GET", "/limits")
        except SalesforceAPIError as e:
            logging.error(f"Access token was rejected by {self.instance_url}: {e}")
            raise

    @property
    def access_token(self) -> str:
        return self.auth.access_token

    @property
    def instance_url(self) -> str:
        return self.auth.instance_url

    def close(self):
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    #=========================================================================
    # Validation
    #=========================================================================

    def _check_collection_batch(self, records, batch_size: int) -> list:
        validate_batch_size(batch_size, self.config.batch_size_max)
        return normalize_records(records)

    def _check_composite_batch(self, records, batch_size: int) -> list:
        records = self._check_collection_batch(records, batch_size)
        validate_number_of_subrequests(len(records), batch_size)
        return records

    def _check_bulk_batch(self, batch_size: int):
        validate_batch_size(batch_size, self.config.bulk_batch_size_max)

    #=========================================================================
    # Raw requests and queries
    #=========================================================================

    def do_request(self, method: str, uri: str, body: str | bytes | None = None, **kwargs) -> httpx.Response:
        """Send an arbitrary request relative to /services/data/<version>."""
        if not method or not uri:
            raise ValidationError("method and uri are required")
        return self.transport.execute(method, uri, body=body, content_type=kwargs.pop("content_type", JSON_TYPE), **kwargs)

    def query(self, soql: str, into=None) -> list:
        return query.perform_query(self.transport, soql, into=into)

    def explain(self, soql: str) -> list:
        return query.explain(self.transport, soql)

    #=========================================================================
    # Single records
    #=========================================================================

    def insert_one(self, object_name: str, record) -> SalesforceResult:
        return sobjects.insert_one(self.transport, object_name, record)

    def update_one(self, object_name: str, record):
        sobjects.update_one(self.transport, object_name, record)

    def upsert_one(self, object_name: str, external_id_field: str, record) -> SalesforceResult:
        return sobjects.upsert_one(self.transport, object_name, external_id_field, record)

    def delete_one(self, object_name: str, record):
        sobjects.delete_one(self.transport, object_name, record)

    #=========================================================================
    # Collections
    #=========================================================================

    def insert_collection(self, object_name: str, records, batch_size: int) -> SalesforceResults:
        records = self._check_collection_batch(records, batch_size)
        return collections.insert_collection(self.transport, object_name, records, batch_size)

    def update_collection(self, object_name: str, records, batch_size: int) -> SalesforceResults:
        records = self._check_collection_batch(records, batch_size)
        return collections.update_collection(self.transport, object_name, records, batch_size)

    def upsert_collection(self, object_name: str, external_id_field: str, records, batch_size: int) -> SalesforceResults:
        records = self._check_collection_batch(records, batch_size)
        return collections.upsert_collection(self.transport, object_name, external_id_field, records, batch_size)

    def delete_collection(self, object_name: str, records, batch_size: int) -> SalesforceResults:
        records = self._check_collection_batch(records, batch_size)
        return collections.delete_collection(self.transport, object_name, records, batch_size)

    #=========================================================================
    # Composite
    #=========================================================================

    def insert_composite(self, object_name: str, records, batch_size: int, all_or_none: bool) -> SalesforceResults:
        records = self._check_composite_batch(records, batch_size)
        return composite.insert_composite(self.transport, object_name, records, batch_size, all_or_none)

    def update_composite(self, object_name: str, records, batch_size: int, all_or_none: bool) -> SalesforceResults:
        records = self._check_composite_batch(records, batch_size)
        return composite.update_composite(self.transport, object_name, records, batch_size, all_or_none)

    def upsert_composite(self, object_name: str, external_id_field: str, records, batch_size: int, all_or_none: bool) -> SalesforceResults:
        records = self._check_composite_batch(records, batch_size)
        return composite.upsert_composite(
            self.transport, object_name, external_id_field, records, batch_size, all_or_none
        )

    def delete_composite(self, object_name: str, records, batch_size: int, all_or_none: bool) -> SalesforceResults:
        records = self._check_composite_batch(records, batch_size)
        return composite.delete_composite(self.transport, object_name, records, batch_size, all_or_none)

    #=========================================================================
    # Bulk
    #=========================================================================

    def submit_bulk(self, operation: str, object_name: str, records, batch_size: int, wait_for_results: bool, **kwargs):
        self._check_bulk_batch(batch_size)
        return jobs.submit_bulk_job(
            self.transport, object_name, operation, records, batch_size,
            wait_for_results=wait_for_results, **kwargs
        )

    def submit_bulk_file(self, operation: str, object_name: str, file_path: str | Path, batch_size: int, wait_for_results: bool, **kwargs):
        self._check_bulk_batch(batch_size)
        return jobs.submit_bulk_job_from_file(
            self.transport, object_name, operation, file_path, batch_size,
            wait_for_results=wait_for_results, **kwargs
        )

    def insert_bulk(self, object_name: str, records, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk(jobs.INSERT_OPERATION, object_name, records, batch_size, wait_for_results, **kwargs)

    def update_bulk(self, object_name: str, records, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk(jobs.UPDATE_OPERATION, object_name, records, batch_size, wait_for_results, **kwargs)

    def upsert_bulk(self, object_name: str, external_id_field: str, records, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk(
            jobs.UPSERT_OPERATION, object_name, records, batch_size, wait_for_results,
            external_id_field=external_id_field, **kwargs
        )

    def delete_bulk(self, object_name: str, records, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk(jobs.DELETE_OPERATION, object_name, records, batch_size, wait_for_results, **kwargs)

    def insert_bulk_file(self, object_name: str, file_path: str | Path, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk_file(jobs.INSERT_OPERATION, object_name, file_path, batch_size, wait_for_results, **kwargs)

    def update_bulk_file(self, object_name: str, file_path: str | Path, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk_file(jobs.UPDATE_OPERATION, object_name, file_path, batch_size, wait_for_results, **kwargs)

    def upsert_bulk_file(self, object_name: str, external_id_field: str, file_path: str | Path, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk_file(
            jobs.UPSERT_OPERATION, object_name, file_path, batch_size, wait_for_results,
            external_id_field=external_id_field, **kwargs
        )

    def delete_bulk_file(self, object_name: str, file_path: str | Path, batch_size: int, wait_for_results: bool = False, **kwargs):
        return self.submit_bulk_file(jobs.DELETE_OPERATION, object_name, file_path, batch_size, wait_for_results, **kwargs)

    def get_job_results(self, job_id: str) -> BulkJobResults:
        return jobs.get_job_results(self.transport, job_id)

    def query_bulk_export(self, soql: str, file_path: str | Path) -> Path:
        return query.query_bulk_export(self.transport, soql, file_path)

    def query_bulk_records(self, soql: str, into=None) -> list:
        return query.query_bulk_records(self.transport, soql, into=into)

    def query_bulk_iterator(self, soql: str, into=None) -> BulkQueryIterator:
        return query.query_bulk_iterator(self.transport, soql, into=into)
