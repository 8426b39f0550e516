# -*- coding: utf-8 -*-
"""
Exception hierarchy shared by every component of the package.

All errors raised across the public API derive from SalesforceError so
callers can catch a single type, while still being able to tell apart
pre-flight validation problems, connectivity failures, errors reported by
Salesforce itself, job-level failures and poller timeouts.
"""


class SalesforceError(Exception):
    """Base class for all errors raised by sforce_batch_manager."""


class ValidationError(SalesforceError, ValueError):
    """Raised before any network call when the input cannot be sent."""


class CodecError(SalesforceError, ValueError):
    """Raised when CSV text returned by Salesforce cannot be decoded."""


class AuthenticationError(SalesforceError):
    """Raised when a credential cannot be acquired or refreshed."""


class TransportError(SalesforceError):
    """Raised when the HTTP exchange itself fails (DNS, TLS, timeouts...)."""


class SalesforceAPIError(SalesforceError):
    """
    Error reported by Salesforce in a non-2xx response.

    Attributes:
        status_code (int): HTTP status of the response.
        errors (list[dict]): Parsed error entries (message, errorCode, fields).
        payload (str): Raw response body, kept for diagnostics.
    """

    def __init__(self, status_code, errors=None, payload=""):
        self.status_code = status_code
        self.errors = errors or []
        self.payload = payload
        super().__init__(payload or f"Salesforce returned HTTP {status_code}")

    @property
    def error_codes(self):
        return [e.get("errorCode") for e in self.errors if isinstance(e, dict)]


class BulkJobError(SalesforceError):
    """Raised when a bulk job ends in Failed/Aborted or reports failed records."""

    def __init__(self, message, job_id=None):
        self.job_id = job_id
        super().__init__(message)


class BulkSubmissionError(BulkJobError):
    """
    Raised when a multi-batch bulk submission stops part way.

    The jobs that were already created are listed in job_ids so the caller
    can inspect or abort them. The underlying error is chained as __cause__.
    """

    def __init__(self, message, job_ids=None):
        self.job_ids = list(job_ids or [])
        super().__init__(message)


class JobTimeoutError(SalesforceError, TimeoutError):
    """Raised when a job does not reach a terminal state before the deadline."""

    def __init__(self, job_id, deadline):
        self.job_id = job_id
        self.deadline = deadline
        super().__init__(
            f"Bulk job {job_id} did not reach a terminal state within {deadline} seconds"
        )
