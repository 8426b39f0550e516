# -*- coding: utf-8 -*-
"""
Splitting record sets into batches that respect Salesforce limits.
"""

import math
from typing import List, Sequence, Tuple

from ..errors import ValidationError
from ..utils.config import BATCH_SIZE_MAX, COMPOSITE_SUBREQUEST_MAX


def validate_batch_size(batch_size: int, maximum: int):
    """Raise ValidationError unless 1 <= batch_size <= maximum."""
    if not isinstance(batch_size, int) or isinstance(batch_size, bool) or not 1 <= batch_size <= maximum:
        raise ValidationError(
            f"batch size = {batch_size} but must be 1 <= batchSize <= {maximum}"
        )


def partition(records: Sequence, max_batch_size: int) -> List[Tuple]:
    """
    Split records front to back into batches of at most max_batch_size.

    Order is preserved and only the last batch may be shorter. Batches are
    tuples so they cannot be modified once handed out.
    """
    if max_batch_size < 1:
        raise ValidationError(f"batch size = {max_batch_size} but must be >= 1")
    return [
        tuple(records[start:start + max_batch_size])
        for start in range(0, len(records), max_batch_size)
    ]


def validate_number_of_subrequests(n_records: int, batch_size: int, maximum: int = COMPOSITE_SUBREQUEST_MAX):
    """
    Fail fast when a composite request would need too many sub-requests.

    Raises:
        ValidationError: If batch_size is not in 1..200 or
            ceil(n_records / batch_size) exceeds maximum.
    """
    validate_batch_size(batch_size, BATCH_SIZE_MAX)
    n_batches = math.ceil(n_records / batch_size)
    if n_batches > maximum:
        raise ValidationError(
            f"{n_batches} subrequests exceed max of {maximum}. "
            f"max records = {maximum} * (batch size)"
        )
    return n_batches
