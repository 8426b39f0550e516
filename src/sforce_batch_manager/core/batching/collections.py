# -*- coding: utf-8 -*-
"""
Batched DML through the sObject Collections API (/composite/sobjects).

Each batch is one physical request sent with allOrNone=false, so a bad
record never rolls back its neighbours. Batches are sent strictly one after
the other and their results are concatenated in submission order.

The record preparation helpers here are shared with the composite
multiplexer: both APIs accept the same record payloads.
"""

import json
import logging
from typing import List

from ..errors import CodecError, ValidationError
from ..models import SalesforceErrorMessage, SalesforceResult, SalesforceResults, decode_model
from ..utils.codec import Record, normalize_records
from ..utils.config import BATCH_SIZE_MAX
from .partition import partition, validate_batch_size
from .transport import Transport, decode_json

COLLECTIONS_PATH = "/composite/sobjects"


#=======================================================================
# Record preparation
#=======================================================================

def _typed(record: Record, object_name: str) -> Record:
    record = dict(record)
    record["attributes"] = {"type": object_name}
    return record


def _has_value(value) -> bool:
    return value is not None and value != ""


def prepare_insert_records(object_name: str, records) -> List[Record]:
    """Normalise records for insertion: drop any Id and tag the object type."""
    prepared = []
    for record in normalize_records(records):
        record = _typed(record, object_name)
        record.pop("Id", None)
        prepared.append(record)
    return prepared


def prepare_update_records(object_name: str, records) -> List[Record]:
    """
    Normalise records for update. Every record must carry a non-empty Id.

    Raises:
        ValidationError: If a record has no Id.
    """
    prepared = [_typed(r, object_name) for r in normalize_records(records)]
    for record in prepared:
        if not _has_value(record.get("Id")):
            raise ValidationError("salesforce id not found in object data")
    return prepared


def prepare_upsert_records(object_name: str, external_id_field: str, records) -> List[Record]:
    """
    Normalise records for upsert. Every record must carry the external id.

    Raises:
        ValidationError: If the field name is empty or a record lacks a value.
    """
    if not external_id_field:
        raise ValidationError("external id field name is required for upsert")
    prepared = [_typed(r, object_name) for r in normalize_records(records)]
    for record in prepared:
        if not _has_value(record.get(external_id_field)):
            raise ValidationError(
                f"salesforce externalId: {external_id_field} not found in {object_name} data. "
                "make sure to append custom fields with '__c'"
            )
    return prepared


def collect_record_ids(records) -> List[str]:
    """
    Extract the Id of every record, failing before any request is made.

    Raises:
        ValidationError: If any record has no Id.
    """
    ids = []
    for record in normalize_records(records):
        record_id = record.get("Id")
        if not _has_value(record_id):
            raise ValidationError("salesforce id not found in object data")
        ids.append(str(record_id))
    return ids


def parse_results(entries) -> List[SalesforceResult]:
    """
    Decode a list of per-record results.

    Entries that are request-level errors ({errorCode, message}) rather than
    record results become a failed result carrying that error.
    """
    if isinstance(entries, dict):
        entries = [entries]
    results = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            raise CodecError(f"unexpected record result: {entry!r}")
        if "success" in entry or "id" in entry:
            results.append(decode_model(SalesforceResult, entry))
        else:
            results.append(SalesforceResult(
                success=False, errors=[decode_model(SalesforceErrorMessage, entry)]
            ))
    return results


#=======================================================================
# Batched requests
#=======================================================================

def batched_collection_request(
        transport: Transport,
        method: str,
        uri: str,
        batch_size: int,
        records: List[Record]
    ) -> SalesforceResults:
    """
    Send records in sequential batches of batch_size to a collections endpoint.

    Returns:
        SalesforceResults: Every record result in order. has_errors is set when
        any record failed; record failures never raise.
    """
    validate_batch_size(batch_size, BATCH_SIZE_MAX)
    results = []
    for i, batch in enumerate(partition(records, batch_size)):
        payload = {"allOrNone": False, "records": list(batch)}
        try:
            response = transport.execute(method, uri, body=json.dumps(payload))
        except Exception:
            logging.error(f"Collection batch {i} failed after {len(results)} record results")
            raise
        results.extend(parse_results(decode_json(response)))
    aggregated = SalesforceResults.from_results(results)
    if aggregated.has_errors:
        logging.warning(f"{sum(not r.success for r in results)} of {len(results)} records failed")
    return aggregated


def insert_collection(transport: Transport, object_name: str, records, batch_size: int) -> SalesforceResults:
    return batched_collection_request(
        transport, "POST", COLLECTIONS_PATH + "/", batch_size,
        prepare_insert_records(object_name, records)
    )


def update_collection(transport: Transport, object_name: str, records, batch_size: int) -> SalesforceResults:
    return batched_collection_request(
        transport, "PATCH", COLLECTIONS_PATH + "/", batch_size,
        prepare_update_records(object_name, records)
    )


def upsert_collection(
        transport: Transport,
        object_name: str,
        external_id_field: str,
        records,
        batch_size: int
    ) -> SalesforceResults:
    return batched_collection_request(
        transport, "PATCH", f"{COLLECTIONS_PATH}/{object_name}/{external_id_field}", batch_size,
        prepare_upsert_records(object_name, external_id_field, records)
    )


def delete_collection(transport: Transport, object_name: str, records, batch_size: int) -> SalesforceResults:
    """
    Delete records by Id in sequential batches.

    All Ids are checked before the first request so a missing Id never
    leaves a partially deleted record set behind.
    """
    validate_batch_size(batch_size, BATCH_SIZE_MAX)
    ids = collect_record_ids(records)
    results = []
    for batch in partition(ids, batch_size):
        response = transport.execute(
            "DELETE", COLLECTIONS_PATH + "/",
            params={"ids": ",".join(batch), "allOrNone": "false"}
        )
        results.extend(parse_results(decode_json(response)))
    logging.debug(f"Deleted {sum(r.success for r in results)} {object_name} records")
    return SalesforceResults.from_results(results)
