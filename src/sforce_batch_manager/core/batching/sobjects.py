# -*- coding: utf-8 -*-
"""
Single-record DML through the sObject Rows API (/sobjects/{object}).

One request per call. Records get the same Id and external id checks as
the batched collection operations.
"""

import json
import logging
from urllib.parse import quote

from ..models import SalesforceResult, decode_model
from .collections import (collect_record_ids, prepare_insert_records,
                          prepare_update_records, prepare_upsert_records)
from .transport import Transport

SOBJECTS_PATH = "/sobjects"


def _record_path(object_name: str, *parts: str) -> str:
    return "/".join([SOBJECTS_PATH, object_name, *(quote(str(p), safe="") for p in parts)])


def insert_one(transport: Transport, object_name: str, record) -> SalesforceResult:
    """
    Create one record. Any Id on the record is ignored.

    Returns:
        SalesforceResult: Id of the new record.
    """
    (payload,) = prepare_insert_records(object_name, [record])
    data = transport.request_json("POST", f"{SOBJECTS_PATH}/{object_name}/", payload)
    result = decode_model(SalesforceResult, data or {})
    logging.debug(f"Inserted {object_name} {result.id}")
    return result


def update_one(transport: Transport, object_name: str, record):
    """
    Update one record identified by its Id.

    Raises:
        ValidationError: If the record has no Id (no request is sent).
    """
    (payload,) = prepare_update_records(object_name, [record])
    record_id = payload.pop("Id")
    transport.execute("PATCH", _record_path(object_name, record_id), body=json.dumps(payload))
    logging.debug(f"Updated {object_name} {record_id}")


def upsert_one(transport: Transport, object_name: str, external_id_field: str, record) -> SalesforceResult:
    """
    Insert or update one record matched on an external id field.

    The external id travels in the URL, not in the body.

    Returns:
        SalesforceResult: Id of the upserted record. Salesforce answers an
        update of an existing record without a body on older API versions;
        that is reported as a success without id.

    Raises:
        ValidationError: If the field name is empty or the record has no
            value for it (no request is sent).
    """
    (payload,) = prepare_upsert_records(object_name, external_id_field, [record])
    external_id = payload.pop(external_id_field)
    payload.pop("Id", None)
    data = transport.request_json(
        "PATCH", _record_path(object_name, external_id_field, external_id), payload
    )
    if data is None:
        return SalesforceResult(success=True)
    return decode_model(SalesforceResult, data)


def delete_one(transport: Transport, object_name: str, record):
    """
    Delete one record identified by its Id.

    Raises:
        ValidationError: If the record has no Id (no request is sent).
    """
    (record_id,) = collect_record_ids([record])
    transport.execute("DELETE", _record_path(object_name, record_id))
    logging.debug(f"Deleted {object_name} {record_id}")
