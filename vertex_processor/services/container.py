from dataclasses import dataclass
from pathlib import Path

from vertex_processor.aggregation.cost import CostEstimator, PriceTable
from vertex_processor.aggregation.engine import AggregationEngine
from vertex_processor.auth.token_provider import GoogleTokenProvider, TokenProvider
from vertex_processor.config.settings import Settings
from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.cache import BestEffortCache
from vertex_processor.database.factory import DocumentStoreFactory
from vertex_processor.database.repositories.record_repository import RecordRepository
from vertex_processor.extraction.field_schema import FieldSchema, load_field_schema
from vertex_processor.extraction.normalizer import ResponseNormalizer
from vertex_processor.extraction.prompt_loader import build_invoice_prompt
from vertex_processor.inference.client_base import BaseInferenceClient
from vertex_processor.inference.factory import InferenceClientFactory
from vertex_processor.processor.processor import Processor
from vertex_processor.publishing.zoho_publisher import (
    ZohoPublisher,
    private_link_for,
    resolve_creator_base,
)
from vertex_processor.services.batch_service import BatchService, OriginDefaults
from vertex_processor.services.extraction_service import ExtractionService
from vertex_processor.services.signed_url_service import SignedUrlService
from vertex_processor.services.summary_service import SummaryService
from vertex_processor.sources.base import DRIVE, ZOHO, BaseFileSource
from vertex_processor.sources.drive import DriveFileSource
from vertex_processor.sources.http_source import HttpFileSource
from vertex_processor.sources.zoho import ZohoFileSource
from vertex_processor.storage.object_store import BaseObjectStore, GcsObjectStore
from vertex_processor.worker.job_runner import JobRunner


@dataclass
class ServiceContainer:
    settings: Settings
    schema: FieldSchema
    token_provider: TokenProvider
    store: BaseDocumentStore
    inference_client: BaseInferenceClient
    sources: dict[str, BaseFileSource]
    http_source: HttpFileSource
    extraction: ExtractionService
    batch: BatchService
    summary: SummaryService
    signed_urls: SignedUrlService
    publisher: ZohoPublisher | None = None

    async def aclose(self) -> None:
        for source in self.sources.values():
            await source.aclose()
        await self.http_source.aclose()
        if self.publisher is not None:
            await self.publisher.aclose()
        await self.inference_client.aclose()
        await self.store.aclose()


def build_container(
    settings: Settings,
    *,
    token_provider: TokenProvider | None = None,
    store: BaseDocumentStore | None = None,
    object_store: BaseObjectStore | None = None,
    inference_client: BaseInferenceClient | None = None,
    sources: dict[str, BaseFileSource] | None = None,
    http_source: HttpFileSource | None = None,
    publisher: ZohoPublisher | None = None,
) -> ServiceContainer:
    """Wire every service from settings; any collaborator can be passed in instead."""
    token_provider = token_provider or GoogleTokenProvider()
    synonyms_path = Path(settings.field_synonyms_path) if settings.field_synonyms_path else None
    schema = load_field_schema(synonyms_path)
    normalizer = ResponseNormalizer(schema)
    prompt = build_invoice_prompt(schema)

    store = store or DocumentStoreFactory.create(settings, token_provider)
    cache = BestEffortCache(store)
    record_repo = RecordRepository(store, settings.sampling_collection)
    object_store = object_store or GcsObjectStore(settings.gcp_project_id)
    inference_client = inference_client or InferenceClientFactory.create(settings, token_provider)
    invoker = InferenceClientFactory.create_invoker(settings, inference_client)
    http_source = http_source or HttpFileSource(timeout_seconds=settings.download_timeout_seconds)
    sources = sources or {
        DRIVE: DriveFileSource(
            token_provider=token_provider,
            quota_project_id=settings.gcp_project_id or None,
            timeout_seconds=settings.download_timeout_seconds,
        ),
        ZOHO: ZohoFileSource(
            app_owner=settings.zoho_app_owner,
            app_link_name=settings.zoho_app_link_name,
            report_name=settings.zoho_report_name,
            file_field=settings.zoho_file_field,
            default_private_link=settings.zoho_private_link or None,
            timeout_seconds=settings.download_timeout_seconds,
        ),
    }

    processor = Processor(
        sources=sources,
        object_store=object_store,
        bucket=settings.gcs_bucket,
        invoker=invoker,
        normalizer=normalizer,
        record_repo=record_repo,
        prompt=prompt,
    )
    defaults = {
        DRIVE: OriginDefaults(
            container_ref=settings.drive_default_folder_id,
            default_count=settings.drive_default_count,
            max_count=settings.drive_max_files,
            upload_prefix=settings.drive_upload_prefix,
        ),
        ZOHO: OriginDefaults(
            container_ref=settings.zoho_report_url,
            default_count=settings.zoho_max_files,
            max_count=settings.zoho_max_files,
            upload_prefix=settings.zoho_upload_prefix,
        ),
    }
    if publisher is None and settings.zoho_publish_enabled:
        publisher = ZohoPublisher(
            schema=schema,
            base_url=resolve_creator_base(settings.zoho_creator_base, settings.zoho_report_url),
            app_owner=settings.zoho_app_owner,
            app_link_name=settings.zoho_app_link_name,
            form_link_name=settings.zoho_form_link_name,
            private_link=private_link_for(
                settings.zoho_publish_private_link,
                settings.zoho_private_link,
                settings.zoho_report_url,
            ),
            include_gcs_uri=settings.zoho_include_gcs_uri,
            timeout_seconds=settings.download_timeout_seconds,
        )
    prices = PriceTable(
        vertex_input_per_1k=settings.vertex_price_input_per_1k_usd,
        vertex_output_per_1k=settings.vertex_price_output_per_1k_usd,
        gcs_per_gb_month=settings.gcs_price_per_gb_month_usd,
        fs_write_per_100k=settings.fs_price_write_per_100k_usd,
        fs_read_per_100k=settings.fs_price_read_per_100k_usd,
    )
    return ServiceContainer(
        settings=settings,
        schema=schema,
        token_provider=token_provider,
        store=store,
        inference_client=inference_client,
        sources=sources,
        http_source=http_source,
        extraction=ExtractionService(
            http_source=http_source,
            object_store=object_store,
            bucket=settings.gcs_bucket,
            invoker=invoker,
            normalizer=normalizer,
            cache=cache,
            model=settings.extract_one_model,
            upload_prefix=settings.direct_upload_prefix,
            publisher=publisher,
        ),
        batch=BatchService(
            sources=sources,
            processor=processor,
            runner=JobRunner(
                settings.sampling_concurrency, settings.sampling_poll_interval_seconds
            ),
            defaults=defaults,
            tag=settings.sampling_tag,
            retry_model=settings.extract_one_model,
        ),
        summary=SummaryService(
            record_repo=record_repo,
            engine=AggregationEngine(schema),
            cache=cache,
            cost_estimator=CostEstimator(),
            default_prices=prices,
            default_tag=settings.sampling_tag,
        ),
        signed_urls=SignedUrlService(
            object_store=object_store,
            cache=cache,
            default_ttl_seconds=settings.signed_url_default_ttl_seconds,
        ),
        publisher=publisher,
    )
