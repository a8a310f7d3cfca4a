from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

REQUIRED_QUEUE_KEYS = ("documentReadyQueue", "ocrResultsQueue")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_env: str = "dev"
    log_level: str = "INFO"
    worker_role: str = "ocr"

    rabbitmq_host: str = "localhost"
    rabbitmq_port: int = 5672
    rabbitmq_username: str = "guest"
    rabbitmq_password: str = "guest"
    rabbitmq_vhost: str = "/"
    broker_url: str = ""
    broker_connect_max_retries: int = 3
    broker_heartbeat_seconds: int = 30
    broker_poll_interval_seconds: float = 1.0

    queues: dict[str, str] = {
        "documentReadyQueue": "ocrQueue",
        "ocrResultsQueue": "ocrResultsQueue",
    }

    max_handler_attempts: int = 3
    retry_backoff_seconds: float = 2.0
    dead_letter_enabled: bool = True
    dead_letter_suffix: str = "-dlq"

    storage_backend: str = "s3"
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "documents"
    minio_use_ssl: bool = False
    minio_region: str = "us-east-1"
    files_root: Path = Path("/app/files")

    ocr_engine: str = "tesseract"
    ocr_languages: str = "eng+deu"
    ocr_timeout_seconds: int = 120
    ocr_dpi: int = 300
    tesseract_binary: str = "tesseract"

    elasticsearch_url: str = "http://localhost:9200"
    elasticsearch_index: str = "ocr-results"
    elasticsearch_timeout_seconds: int = 10
    search_max_results: int = 100

    @field_validator("queues", mode="before")
    @classmethod
    def _canonical_queue_keys(cls, value: Any) -> Any:
        # Nested env keys arrive lowercased (QUEUES__documentReadyQueue -> documentreadyqueue).
        if not isinstance(value, dict):
            return value
        canonical = {key.lower(): key for key in REQUIRED_QUEUE_KEYS}
        return {canonical.get(str(key).lower(), key): name for key, name in value.items()}

    @field_validator("queues")
    @classmethod
    def _require_pipeline_queues(cls, value: dict[str, str]) -> dict[str, str]:
        missing = [key for key in REQUIRED_QUEUE_KEYS if not (value.get(key) or "").strip()]
        if missing:
            raise ValueError(f"Missing queue names in configuration: {missing}")
        return value

    @field_validator("max_handler_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_handler_attempts must be >= 1")
        return value

    def queue_name(self, key: str) -> str:
        """Resolve a logical queue key (e.g. 'ocrResultsQueue') to the broker queue name."""
        try:
            return self.queues[key]
        except KeyError:
            raise KeyError(f"Queue '{key}' is not configured") from None

    def amqp_url(self) -> str:
        """Broker URL, either the explicit override or one assembled from rabbitmq_*."""
        if self.broker_url:
            return self.broker_url
        vhost = self.rabbitmq_vhost.lstrip("/")
        return (
            f"amqp://{self.rabbitmq_username}:{self.rabbitmq_password}"
            f"@{self.rabbitmq_host}:{self.rabbitmq_port}/{vhost}"
        )
