"""Tests for batch partitioning and limit validation."""

import math

import pytest

from sforce_batch_manager.core.batching.partition import (
    partition,
    validate_batch_size,
    validate_number_of_subrequests,
)
from sforce_batch_manager.core.errors import ValidationError


def make_records(n):
    return [{"Name": f"Account {i}"} for i in range(n)]


class TestPartition:
    def test_450_records_in_batches_of_200(self):
        batches = partition(make_records(450), 200)

        assert [len(b) for b in batches] == [200, 200, 50]

    @pytest.mark.parametrize("n_records,batch_size", [(1, 1), (7, 3), (10, 5), (199, 200), (1000, 7)])
    def test_batches_reassemble_input_in_order(self, n_records, batch_size):
        records = make_records(n_records)

        batches = partition(records, batch_size)

        assert [r for batch in batches for r in batch] == records
        assert len(batches) == math.ceil(n_records / batch_size)
        assert all(len(b) == batch_size for b in batches[:-1])

    def test_empty_input_gives_no_batches(self):
        assert partition([], 200) == []

    def test_batches_are_immutable(self):
        batches = partition(make_records(3), 2)

        assert all(isinstance(b, tuple) for b in batches)

    def test_non_positive_batch_size_rejected(self):
        with pytest.raises(ValidationError):
            partition(make_records(3), 0)


class TestValidateBatchSize:
    @pytest.mark.parametrize("size", [1, 100, 200])
    def test_accepts_sizes_within_range(self, size):
        validate_batch_size(size, 200)

    @pytest.mark.parametrize("size", [0, -1, 201, True, "10", 2.5])
    def test_rejects_sizes_out_of_range_or_wrong_type(self, size):
        with pytest.raises(ValidationError, match="must be 1 <= batchSize <= 200"):
            validate_batch_size(size, 200)


class TestValidateNumberOfSubrequests:
    def test_25_subrequests_allowed(self):
        assert validate_number_of_subrequests(25 * 200, 200) == 25

    def test_26_subrequests_rejected(self):
        with pytest.raises(ValidationError, match="26 subrequests exceed max of 25"):
            validate_number_of_subrequests(25 * 200 + 1, 200)

    def test_partial_last_batch_counts(self):
        with pytest.raises(ValidationError):
            validate_number_of_subrequests(26, 1)
