"""Request and response models for the HTTP API (camelCase on the wire)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(ApiModel):
    success: bool = False
    error: str


class HealthResponse(ApiModel):
    status: str
    message: str


class ExtractOneRequest(ApiModel):
    file_url: str | None = None
    gs_uri: str | None = None
    prompt: str | None = None
    location: str | None = None
    use_batch: bool = True
    reset: bool = False


class ExtractOneResponse(ApiModel):
    success: bool = True
    stored_object_uri: str
    extracted: dict[str, Any] | None = None
    extracted_raw: dict[str, Any] | None = None
    raw_inference: Any = None
    cached: bool = False
    cached_at: str | None = None
    published: Any = None


class VerifyAuthResponse(ApiModel):
    auth_mode: str
    project_id: str | None = None
    location: str
    model: str
    bucket: str | None = None
    has_credentials_json: bool = False


class RunBatchRequest(ApiModel):
    folder_or_report_ref: str | None = None
    origin: str | None = None
    count: int | None = Field(default=None, ge=1)


class RunBatchResponse(ApiModel):
    success: bool = True
    processed: int
    failed: int
    avg_confidence_overall: float
    results: list[dict[str, Any]]
    errors: list[dict[str, Any]]


class SummaryResponse(ApiModel):
    success: bool = True
    overall_avg_confidence: float
    count: int
    policy: str
    rows: list[dict[str, Any]]
    cached: bool = False
    cached_at: int | None = None


class RetryOneRequest(ApiModel):
    record_id: str | None = None
    location: str | None = None
    use_batch: bool = True


class RetryOneResponse(ApiModel):
    success: bool = True
    record_id: str
    avg: float | None = None
    usage: dict[str, Any] | None = None


class SignedUrlResponse(ApiModel):
    success: bool = True
    url: str
    expires: int
    cached: bool
    cached_at: str | None = None


class RecomputeResponse(ApiModel):
    success: bool = True
    scanned: int
    updated: int
    changes: list[dict[str, Any]]


class CostResponse(ApiModel):
    success: bool = True
    counts: dict[str, Any]
    pricing: dict[str, float | None]
    costs: dict[str, Any]
