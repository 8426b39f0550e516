# -*- coding: utf-8 -*-
"""
Wire models exchanged with the Salesforce REST and Bulk 2.0 APIs.

Field names follow the JSON payloads through aliases so that
model_validate() accepts raw responses and model_dump(by_alias=True)
produces request bodies.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import CodecError


def decode_model(model, data):
    """
    Validate a decoded response payload against a wire model.

    Raises:
        CodecError: If the payload does not fit the model (e.g. an unknown
            job state).
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise CodecError(f"unexpected {model.__name__} payload: {e}") from e


class JobState(str, Enum):
    OPEN = "Open"
    UPLOAD_COMPLETE = "UploadComplete"
    IN_PROGRESS = "InProgress"
    JOB_COMPLETE = "JobComplete"
    FAILED = "Failed"
    ABORTED = "Aborted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({JobState.JOB_COMPLETE, JobState.FAILED, JobState.ABORTED})

# Transitions the client is allowed to request through PATCH /jobs/ingest/{id}
ALLOWED_TRANSITIONS = {
    JobState.OPEN: frozenset({JobState.UPLOAD_COMPLETE, JobState.ABORTED}),
    JobState.UPLOAD_COMPLETE: frozenset({JobState.ABORTED}),
    JobState.IN_PROGRESS: frozenset({JobState.ABORTED}),
}


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SalesforceErrorMessage(_WireModel):
    message: str = ""
    status_code: str = Field(default="", alias="statusCode")
    fields: List[str] = Field(default_factory=list)
    error_code: str = Field(default="", alias="errorCode")


class SalesforceResult(_WireModel):
    """Outcome of one record operation."""

    id: Optional[str] = None
    success: bool = False
    errors: List[SalesforceErrorMessage] = Field(default_factory=list)


class SalesforceResults(BaseModel):
    """Ordered results of a batched call plus an informational error flag."""

    results: List[SalesforceResult] = Field(default_factory=list)
    has_errors: bool = False

    @classmethod
    def from_results(cls, results):
        results = list(results)
        return cls(results=results, has_errors=any(not r.success for r in results))


class BulkJob(_WireModel):
    id: str = ""
    state: Optional[JobState] = None


class BulkJobCreationRequest(_WireModel):
    object: str
    operation: str
    external_id_field_name: Optional[str] = Field(default=None, alias="externalIdFieldName")
    assignment_rule_id: Optional[str] = Field(default=None, alias="assignmentRuleId")
    content_type: str = Field(default="CSV", alias="contentType")
    line_ending: str = Field(default="LF", alias="lineEnding")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BulkQueryJobCreationRequest(_WireModel):
    operation: str = "query"
    query: str

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class BulkJobResults(_WireModel):
    """Status of a bulk job, optionally enriched with its record results."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str = ""
    state: Optional[JobState] = None
    number_records_failed: int = Field(default=0, alias="numberRecordsFailed")
    number_records_processed: int = Field(default=0, alias="numberRecordsProcessed")
    error_message: str = Field(default="", alias="errorMessage")
    successful_records: Optional[List[Dict[str, Any]]] = None
    failed_records: Optional[List[Dict[str, Any]]] = None


class CompositeSubRequest(_WireModel):
    method: str
    url: str
    reference_id: str = Field(alias="referenceId")
    body: Optional[Dict[str, Any]] = None


class CompositeRequest(_WireModel):
    all_or_none: bool = Field(alias="allOrNone")
    composite_request: List[CompositeSubRequest] = Field(alias="compositeRequest")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ExplainPlan(_WireModel):
    cardinality: int = 0
    fields: List[str] = Field(default_factory=list)
    leading_operation_type: str = Field(default="", alias="leadingOperationType")
    relative_cost: float = Field(default=0.0, alias="relativeCost")
    sobject_cardinality: int = Field(default=0, alias="sobjectCardinality")
    notes: List[Dict[str, Any]] = Field(default_factory=list)
    sobject_type: str = Field(default="", alias="sobjectType")
