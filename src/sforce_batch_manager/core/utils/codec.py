# -*- coding: utf-8 -*-

"""
Record codec: conversion between keyed records and CSV text.

Records enter the package in two shapes: typed records (pydantic models or
dataclass instances) and generic mappings. normalize_records() is the one
place where both become plain dicts; everything downstream only sees dicts.
"""

import csv
import dataclasses
import io
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Dict, List

import polars as pl
from pydantic import BaseModel

from ..errors import CodecError, ValidationError
from .misc import assert_required_path, ensure_output_path, mask_path


Record = Dict[str, Any]


#=======================================================================
# Record normalisation
#=======================================================================

def normalize_record(record) -> Record:
    """
    Convert one typed or generic record into a plain dict.

    Raises:
        ValidationError: If the record is neither a mapping, a pydantic
            model nor a dataclass instance.
    """
    if isinstance(record, Mapping):
        return dict(record)
    if isinstance(record, BaseModel):
        return record.model_dump(by_alias=True)
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    raise ValidationError(
        "expected a key value record (mapping, pydantic model or dataclass), "
        f"got: {type(record).__name__}"
    )


def normalize_records(records) -> List[Record]:
    """Convert a sequence of typed or generic records into a list of dicts."""
    if records is None or isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
        raise ValidationError(f"expected a sequence of records, got: {type(records).__name__}")
    return [normalize_record(r) for r in records]


def decode_rows(rows: List[Record], into=None) -> list:
    """
    Map decoded rows onto a caller supplied record shape.

    Args:
        rows: Records as returned by csv_to_records().
        into: None to keep dicts, a pydantic model class, or a dataclass type.
    """
    if into is None:
        return rows
    if isinstance(into, type) and issubclass(into, BaseModel):
        return [into.model_validate(row) for row in rows]
    if dataclasses.is_dataclass(into) and isinstance(into, type):
        names = {f.name for f in dataclasses.fields(into)}
        return [into(**{k: v for k, v in row.items() if k in names}) for row in rows]
    raise ValidationError(f"cannot decode rows into {into!r}: expected a pydantic model or dataclass type")


#=======================================================================
# CSV text
#=======================================================================

def _format_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def records_to_csv(records: List[Record]) -> str:
    """
    Serialise records to CSV with a header row.

    The header is the union of all keys in first-seen order; missing or
    None values are written as empty fields.
    """
    if not records:
        return ""
    headers = []
    for record in records:
        for key in record:
            if key not in headers:
                headers.append(key)

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        writer.writerow([_format_value(record.get(h)) for h in headers])
    return buf.getvalue()


def csv_rows(text: str) -> List[List[str]]:
    """Parse CSV text into raw rows (header row included)."""
    try:
        return [row for row in csv.reader(io.StringIO(text)) if row]
    except csv.Error as e:
        raise CodecError(f"unable to parse CSV data: {e}") from e


def rows_to_records(rows: List[List[str]]) -> List[Record]:
    """Turn a header row plus data rows into records."""
    if not rows:
        return []
    keys = rows[0]
    records = []
    for i, row in enumerate(rows[1:], start=1):
        if len(row) != len(keys):
            raise CodecError(
                f"record on line {i + 1}: wrong number of fields "
                f"(expected {len(keys)}, got {len(row)})"
            )
        records.append(dict(zip(keys, row)))
    return records


def csv_to_records(text: str) -> List[Record]:
    """Parse CSV text with a header row into records of strings."""
    return rows_to_records(csv_rows(text))


#=======================================================================
# CSV files
#=======================================================================

def read_csv_file(path: str | Path) -> List[Record]:
    """
    Read a CSV file into records, keeping every value as a string.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    assert_required_path(path, description="CSV file")
    if path.stat().st_size == 0:
        logging.warning(f"CSV file {mask_path(path)} is empty")
        return []
    df = pl.read_csv(path, infer_schema=False).fill_null("")
    logging.debug(f"Read {df.height} records from {mask_path(path)}")
    return df.to_dicts()


def write_csv_file(rows: List[List[str]], path: str | Path) -> Path:
    """
    Write raw CSV rows (header first) to a file.

    Returns:
        Path: The written file.
    """
    path = Path(path)
    ensure_output_path(path, description="CSV output folder")
    if not rows:
        path.write_text("", encoding="utf-8")
        return path
    header, data = rows[0], rows[1:]
    df = pl.DataFrame(data, schema={name: pl.Utf8 for name in header}, orient="row")
    df.write_csv(path)
    logging.info(f"Wrote {df.height} records to {mask_path(path)}")
    return path
