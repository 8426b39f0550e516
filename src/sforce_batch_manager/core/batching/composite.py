# -*- coding: utf-8 -*-
"""
Composite multiplexer.

Packs up to 25 collection batches into a single POST /composite call. Each
batch becomes one sub-request labelled refObj<i>; the sub-responses are
flattened back into one ordered result list. Per-record failures are
reported through SalesforceResults.has_errors and never raise.
"""

import json
import logging
from typing import List

from ..errors import CodecError
from ..models import CompositeRequest, CompositeSubRequest, SalesforceResults
from ..utils.codec import Record
from .collections import (COLLECTIONS_PATH, collect_record_ids, parse_results,
                          prepare_insert_records, prepare_update_records,
                          prepare_upsert_records)
from .partition import partition, validate_number_of_subrequests
from .transport import Transport, decode_json

COMPOSITE_PATH = "/composite"


def reference_id(index: int) -> str:
    return f"refObj{index}"


def sobjects_url(transport: Transport, suffix: str = "") -> str:
    """Full service path of the collections endpoint, as sub-requests require."""
    return f"/services/data/{transport.config.api_version}{COLLECTIONS_PATH}{suffix}"


def build_composite_envelope(
        method: str,
        target_path: str,
        all_or_none: bool,
        max_batch_size: int,
        records: List[Record]
    ) -> CompositeRequest:
    """
    Wrap each batch of records as one collection sub-request.

    Raises:
        ValidationError: If more than 25 sub-requests would be needed.
    """
    validate_number_of_subrequests(len(records), max_batch_size)
    sub_requests = [
        CompositeSubRequest(
            method=method,
            url=target_path,
            reference_id=reference_id(i),
            body={"allOrNone": all_or_none, "records": list(batch)},
        )
        for i, batch in enumerate(partition(records, max_batch_size))
    ]
    return CompositeRequest(all_or_none=all_or_none, composite_request=sub_requests)


def build_delete_envelope(
        transport: Transport,
        all_or_none: bool,
        max_batch_size: int,
        records
    ) -> CompositeRequest:
    """
    Build a composite delete: record ids travel in each sub-request URL.

    Every record must carry an Id; this is checked for the whole set before
    the envelope is built.

    Raises:
        ValidationError: On a missing Id or too many sub-requests.
    """
    ids = collect_record_ids(records)
    validate_number_of_subrequests(len(ids), max_batch_size)
    flag = "true" if all_or_none else "false"
    sub_requests = [
        CompositeSubRequest(
            method="DELETE",
            url=sobjects_url(transport, f"/?ids={','.join(batch)}&allOrNone={flag}"),
            reference_id=reference_id(i),
        )
        for i, batch in enumerate(partition(ids, max_batch_size))
    ]
    return CompositeRequest(all_or_none=all_or_none, composite_request=sub_requests)


def process_composite_response(data: dict, all_or_none: bool) -> SalesforceResults:
    """Flatten composite sub-responses into one ordered result list."""
    if not isinstance(data, dict):
        raise CodecError(f"unexpected composite response: {type(data).__name__}")
    results = []
    for sub_response in data.get("compositeResponse") or []:
        results.extend(parse_results(sub_response.get("body")))
    aggregated = SalesforceResults.from_results(results)
    if aggregated.has_errors and all_or_none:
        logging.warning(
            "Records rolled back because not all records were valid and the request was using allOrNone"
        )
    return aggregated


def send_composite(transport: Transport, envelope: CompositeRequest) -> SalesforceResults:
    """Send one envelope as a single physical request."""
    logging.debug(f"Sending composite request with {len(envelope.composite_request)} sub-requests")
    response = transport.execute("POST", COMPOSITE_PATH, body=json.dumps(envelope.to_payload()))
    return process_composite_response(decode_json(response), envelope.all_or_none)


def multiplex(
        transport: Transport,
        method: str,
        target_path: str,
        all_or_none: bool,
        max_batch_size: int,
        records: List[Record]
    ) -> SalesforceResults:
    """
    Send records as batched sub-requests of one composite call.

    Args:
        transport: Transport used for the single physical call.
        method: HTTP method of every sub-request.
        target_path: Full service path each sub-request targets.
        all_or_none: Ask Salesforce to roll back a batch if any record fails.
        max_batch_size: Records per sub-request.
        records: Prepared records.

    Returns:
        SalesforceResults: One result per record in submission order.

    Raises:
        ValidationError: Before any I/O if more than 25 sub-requests are needed.
    """
    envelope = build_composite_envelope(method, target_path, all_or_none, max_batch_size, records)
    return send_composite(transport, envelope)


def insert_composite(transport: Transport, object_name: str, records, batch_size: int, all_or_none: bool):
    return multiplex(
        transport, "POST", sobjects_url(transport), all_or_none, batch_size,
        prepare_insert_records(object_name, records)
    )


def update_composite(transport: Transport, object_name: str, records, batch_size: int, all_or_none: bool):
    return multiplex(
        transport, "PATCH", sobjects_url(transport), all_or_none, batch_size,
        prepare_update_records(object_name, records)
    )


def upsert_composite(
        transport: Transport,
        object_name: str,
        external_id_field: str,
        records,
        batch_size: int,
        all_or_none: bool
    ):
    return multiplex(
        transport, "PATCH", sobjects_url(transport, f"/{object_name}/{external_id_field}"),
        all_or_none, batch_size,
        prepare_upsert_records(object_name, external_id_field, records)
    )


def delete_composite(transport: Transport, object_name: str, records, batch_size: int, all_or_none: bool):
    envelope = build_delete_envelope(transport, all_or_none, batch_size, records)
    logging.debug(f"Deleting {object_name} records in {len(envelope.composite_request)} sub-requests")
    return send_composite(transport, envelope)
