from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    server_host: str = "0.0.0.0"
    server_port: int = 8080

    gcp_project_id: str = ""
    gcs_bucket: str = ""

    inference_provider: str = "vertex"
    vertex_location: str = "us-central1"
    vertex_model: str = "gemini-2.5-pro"
    vertex_fallback_models: list[str] = [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-2.0-flash-001",
        "gemini-1.5-pro-002",
        "gemini-1.5-flash-002",
    ]
    vertex_thinking_model_patterns: list[str] = [r"gemini-2\.5-(pro|flash)"]
    vertex_timeout_seconds: int = 60
    vertex_input: str = "gcs"

    openai_compatible_base_url: str = ""
    openai_compatible_api_key: str = ""
    openai_compatible_timeout_seconds: int = 60

    document_store_backend: str = "firestore"
    firestore_database_id: str = "(default)"
    firestore_fallback_to_default: bool = True

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "vertex_processor"
    db_username: str = "vertex_processor"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_pool_timeout_seconds: float = 30.0
    db_connect_timeout_seconds: int = 10

    sampling_collection: str = "Sampling"
    sampling_tag: str = "prasoon-sampling"
    sampling_concurrency: int = 4
    sampling_poll_interval_seconds: float = 0.1
    extract_one_model: str = "gemini-2.5-flash"

    drive_default_folder_id: str = ""
    drive_default_count: int = 200
    drive_max_files: int = 500

    zoho_report_url: str = ""
    zoho_private_link: str = ""
    zoho_app_owner: str = "deloittettipl"
    zoho_app_link_name: str = "trade-invoice-platform"
    zoho_report_name: str = "Files"
    zoho_file_field: str = "upload_invoice"
    zoho_max_files: int = 200

    zoho_publish_enabled: bool = False
    zoho_creator_base: str = ""
    zoho_form_link_name: str = "Google_AI_SCAN_Response"
    zoho_publish_private_link: str = ""
    zoho_include_gcs_uri: bool = False

    drive_upload_prefix: str = "prasoon"
    zoho_upload_prefix: str = "sampling"
    direct_upload_prefix: str = "direct"

    download_timeout_seconds: int = 60
    signed_url_default_ttl_seconds: int = 600
    summary_cache_ttl_seconds: int = 300
    field_synonyms_path: str = ""

    vertex_price_input_per_1k_usd: float | None = None
    vertex_price_output_per_1k_usd: float | None = None
    gcs_price_per_gb_month_usd: float | None = 0.026
    fs_price_write_per_100k_usd: float | None = 0.18
    fs_price_read_per_100k_usd: float | None = 0.06
