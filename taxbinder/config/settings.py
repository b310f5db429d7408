from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "taxbinder"
    db_username: str = "taxbinder"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    worker_concurrency: int = 4
    bulk_concurrency: int = 4

    storage_backend: str = "local"
    storage_local_root: str = "/app/files"
    storage_s3_bucket: str = ""
    storage_s3_region: str = ""
    storage_s3_endpoint_url: str = ""
    signed_url_ttl_seconds: int = 3600

    ocr_provider: str = "azure"
    azure_document_intelligence_endpoint: str = ""
    azure_document_intelligence_key: str = ""
    azure_document_intelligence_api_version: str = "2023-07-31"
    ocr_timeout_seconds: int = 120
    ocr_poll_interval_seconds: float = 1.0

    classification_provider: str = "openai"
    classification_openai_api_key: str = ""
    classification_openai_model_name: str = "gpt-4o-mini"
    classification_openai_compatible_base_url: str = ""
    classification_timeout_seconds: int = 60
    classification_temperature: float = 0.0
    classification_max_text_chars: int = 50000

    capability_retry_attempts: int = 3
    capability_retry_max_wait_seconds: int = 10
