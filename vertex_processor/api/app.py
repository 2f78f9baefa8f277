from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from vertex_processor.aggregation.engine import SelectionPolicy, SummaryFilter
from vertex_processor.aggregation.export import export_csv, export_json
from vertex_processor.api.schemas import (
    CostResponse,
    ErrorResponse,
    ExtractOneRequest,
    ExtractOneResponse,
    HealthResponse,
    RecomputeResponse,
    RetryOneRequest,
    RetryOneResponse,
    RunBatchRequest,
    RunBatchResponse,
    SignedUrlResponse,
    SummaryResponse,
    VerifyAuthResponse,
)
from vertex_processor.auth.token_provider import AuthError, detect_auth_mode, has_credentials_file
from vertex_processor.config.settings import Settings
from vertex_processor.database.connection import close_pool, init_pool
from vertex_processor.database.exceptions import DocumentStoreError
from vertex_processor.database.postgres_store import PostgresDocumentStore
from vertex_processor.extraction.exceptions import ExtractionError
from vertex_processor.inference.exceptions import InferenceError
from vertex_processor.logging.logger import Log
from vertex_processor.processor.exceptions import (
    MissingStoredObjectError,
    ProcessorError,
    RecordNotFoundError,
)
from vertex_processor.publishing.exceptions import InvalidFileIdError, PublishError
from vertex_processor.services.container import ServiceContainer, build_container
from vertex_processor.services.exceptions import InvalidRequestError, NoSourceFilesError
from vertex_processor.sources.exceptions import InvalidLocatorError, SourceError
from vertex_processor.storage.exceptions import InvalidObjectUriError, ObjectStoreError

# Handlers resolve by exception MRO; _status_for checks in order.
ERROR_STATUS: tuple[tuple[type[Exception], int], ...] = (
    (InvalidRequestError, 400),
    (InvalidLocatorError, 400),
    (InvalidObjectUriError, 400),
    (MissingStoredObjectError, 400),
    (InvalidFileIdError, 400),
    (RecordNotFoundError, 404),
    (NoSourceFilesError, 404),
    (PublishError, 502),
    (InferenceError, 500),
    (SourceError, 500),
    (ObjectStoreError, 500),
    (DocumentStoreError, 500),
    (ProcessorError, 500),
    (ExtractionError, 500),
    (AuthError, 500),
)

router = APIRouter(prefix="/api")


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(by_alias=True),
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", message="vertex-processor is running")


@router.get("/verify-auth", response_model=VerifyAuthResponse)
async def verify_auth(container: ServiceContainer = Depends(get_container)) -> VerifyAuthResponse:
    settings = container.settings
    project_id = settings.gcp_project_id or None
    if project_id is None:
        try:
            project_id = await container.token_provider.get_project_id()
        except AuthError as exc:
            Log.warning("Project id lookup failed", error=str(exc))
    return VerifyAuthResponse(
        auth_mode=detect_auth_mode(),
        project_id=project_id,
        location=settings.vertex_location,
        model=settings.vertex_model,
        bucket=settings.gcs_bucket or None,
        has_credentials_json=has_credentials_file(),
    )

@router.post("/extract-one", response_model=ExtractOneResponse)
async def extract_one(
    body: ExtractOneRequest, container: ServiceContainer = Depends(get_container)
) -> ExtractOneResponse:
    result = await container.extraction.extract_one(
        file_url=body.file_url or body.gs_uri,
        prompt=body.prompt,
        location=body.location,
        use_batch=body.use_batch,
        reset=body.reset,
    )
    return ExtractOneResponse(
        stored_object_uri=result.stored_object_uri,
        extracted=result.extracted,
        extracted_raw=result.extracted_raw,
        raw_inference=result.raw_inference,
        cached=result.cached,
        cached_at=result.cached_at,
        published=result.published,
    )


@router.post("/run-batch", response_model=RunBatchResponse)
async def run_batch(
    body: RunBatchRequest, container: ServiceContainer = Depends(get_container)
) -> RunBatchResponse:
    result = await container.batch.run_batch(
        container_ref=body.folder_or_report_ref, origin=body.origin, count=body.count
    )
    return RunBatchResponse(
        processed=result.processed,
        failed=result.failed,
        avg_confidence_overall=result.avg_confidence_overall,
        results=result.results,
        errors=result.errors,
    )


@router.get("/summary", response_model=SummaryResponse)
async def summary(
    tag: str | None = None,
    folder_id: str | None = Query(default=None, alias="folderId"),
    policy: SelectionPolicy = SelectionPolicy.ZERO_FILL,
    cached: bool = False,
    reset: bool = False,
    ttl_sec: int | None = Query(default=None, alias="ttlSec", ge=0),
    container: ServiceContainer = Depends(get_container),
) -> SummaryResponse:
    summary_filter = SummaryFilter(tag=tag, folder_id=folder_id)
    if cached or reset:
        ttl = container.settings.summary_cache_ttl_seconds if ttl_sec is None else ttl_sec
        entry = await container.summary.cached_summary(
            summary_filter, policy, ttl_seconds=ttl, reset=reset
        )
        payload, was_cached, cached_at = entry.payload, entry.cached, entry.cached_at
    else:
        payload = (await container.summary.summarize(summary_filter, policy)).to_dict()
        was_cached, cached_at = False, None
    return SummaryResponse(
        overall_avg_confidence=payload["overallAvgConfidence"],
        count=payload["count"],
        policy=payload["policy"],
        rows=payload["rows"],
        cached=was_cached,
        cached_at=cached_at,
    )


@router.get("/export")
async def export(
    format: str = "csv",
    policy: SelectionPolicy = SelectionPolicy.EXCLUDE_MISSING,
    tag: str | None = None,
    folder_id: str | None = Query(default=None, alias="folderId"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    result = await container.summary.summarize(SummaryFilter(tag=tag, folder_id=folder_id), policy)
    headers = {
        "X-Overall-Average": f"{result.overall_avg_confidence:.6f}",
        "Cache-Control": "no-store",
    }
    if format.lower() == "json":
        return JSONResponse(content=export_json(result, container.schema), headers=headers)
    if format.lower() != "csv":
        return error_response(400, f"Unsupported export format: {format}")
    headers["Content-Disposition"] = 'attachment; filename="sampling-summary.csv"'
    return Response(
        content=export_csv(result, container.schema),
        media_type="text/csv; charset=utf-8",
        headers=headers,
    )


@router.post("/retry-one", response_model=RetryOneResponse)
async def retry_one(
    body: RetryOneRequest, container: ServiceContainer = Depends(get_container)
) -> RetryOneResponse:
    result = await container.batch.retry_one(
        body.record_id, location=body.location, use_batch=body.use_batch
    )
    return RetryOneResponse(record_id=result["recordId"], avg=result["avg"], usage=result["usage"])


@router.get("/signed-url", response_model=SignedUrlResponse)
async def signed_url(
    object_uri: str = Query(alias="objectUri"),
    ttl_sec: int | None = Query(default=None, alias="ttlSec"),
    container: ServiceContainer = Depends(get_container),
) -> SignedUrlResponse:
    result = await container.signed_urls.signed_url(object_uri, ttl_sec)
    return SignedUrlResponse(
        url=result.url, expires=result.expires, cached=result.cached, cached_at=result.cached_at
    )


@router.api_route("/recompute-averages", methods=["GET", "POST"], response_model=RecomputeResponse)
async def recompute_averages(
    container: ServiceContainer = Depends(get_container),
) -> RecomputeResponse:
    result = await container.summary.recompute()
    return RecomputeResponse(
        scanned=result.scanned,
        updated=result.updated,
        changes=[change.to_dict() for change in result.changes],
    )


@router.get("/cost", response_model=CostResponse)
async def cost(
    vertex_in_per_1k: float | None = None,
    vertex_out_per_1k: float | None = None,
    gcs_per_gb_month: float | None = None,
    fs_write_per_100k: float | None = None,
    fs_read_per_100k: float | None = None,
    container: ServiceContainer = Depends(get_container),
) -> CostResponse:
    report = await container.summary.cost(
        {
            "vertex_input_per_1k": vertex_in_per_1k,
            "vertex_output_per_1k": vertex_out_per_1k,
            "gcs_per_gb_month": gcs_per_gb_month,
            "fs_write_per_100k": fs_write_per_100k,
            "fs_read_per_100k": fs_read_per_100k,
        }
    )
    return CostResponse(
        counts=report.totals.to_dict(),
        pricing=report.prices.to_dict(),
        costs=report.costs.to_dict(),
    )


def _status_for(exc: Exception) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Build the API application; a prepared container replaces the default wiring."""
    settings = settings or (container.settings if container else Settings())
    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        uses_postgres = isinstance(container.store, PostgresDocumentStore)
        if uses_postgres:
            await init_pool(settings)
            await container.store.ensure_schema()
        try:
            yield
        finally:
            await container.aclose()
            if uses_postgres:
                await close_pool()

    app = FastAPI(title="vertex-processor", version="1.0.0", lifespan=lifespan)
    app.state.container = container
    app.include_router(router)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, f"Invalid request: {exc.errors()}")

    async def handle_error(request: Request, exc: Exception) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            Log.error(f"{request.method} {request.url.path} failed: {exc}")
        return error_response(status_code, str(exc) or type(exc).__name__)

    for exc_type, _ in ERROR_STATUS:
        app.add_exception_handler(exc_type, handle_error)

    return app
