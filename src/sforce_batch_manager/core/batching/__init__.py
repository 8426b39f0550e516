"""
Batch processing operations for SForce Batch Manager.

Submodules:
    partition:   Batch splitting and limit validation
    transport:   Resilient single-request executor
    sobjects:    Single-record DML
    collections: sObject Collections batched DML
    composite:   Composite multiplexer
    jobs:        Bulk job lifecycle (create, upload, results)
    poller:      Job completion polling
    query:       Query result pagination and streaming

Example Usage:
    import sforce_batch_manager as sfbm

    transport = client.transport
    results = sfbm.batching.composite.insert_composite(transport, 'Account', records, 200, False)
    job_ids = sfbm.batching.jobs.submit_bulk_job(transport, 'Account', 'insert', records, 10000)
    sfbm.batching.poller.wait_for_job_results(transport, job_ids)
"""

from . import partition
from . import transport
from . import sobjects
from . import collections
from . import composite
from . import jobs
from . import poller
from . import query

__all__ = [
    'partition',
    'transport',
    'sobjects',
    'collections',
    'composite',
    'jobs',
    'poller',
    'query',
]
