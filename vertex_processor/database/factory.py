from vertex_processor.auth.token_provider import TokenProvider
from vertex_processor.config.settings import Settings
from vertex_processor.database.base import BaseDocumentStore
from vertex_processor.database.firestore_store import DEFAULT_DATABASE, FirestoreRestStore
from vertex_processor.database.postgres_store import PostgresDocumentStore
from vertex_processor.database.resolver import StoreResolver


class DocumentStoreFactory:
    """Creates the configured document store."""

    @classmethod
    def create(cls, settings: Settings, token_provider: TokenProvider) -> BaseDocumentStore:
        backend = settings.document_store_backend.lower()
        if backend == "postgres":
            return PostgresDocumentStore()
        if backend == "firestore":
            return StoreResolver(
                [
                    FirestoreRestStore(
                        project_id=settings.gcp_project_id,
                        token_provider=token_provider,
                        database_id=database_id,
                    )
                    for database_id in cls._resolve_database_ids(settings)
                ]
            )
        raise ValueError(
            f"Unknown document store backend '{backend}'. Choose from: ['firestore', 'postgres']"
        )

    @classmethod
    def _resolve_database_ids(cls, settings: Settings) -> list[str]:
        named = (settings.firestore_database_id or "").strip() or DEFAULT_DATABASE
        if named == DEFAULT_DATABASE or not settings.firestore_fallback_to_default:
            return [named]
        return [named, DEFAULT_DATABASE]
