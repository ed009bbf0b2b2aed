"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "bank-aml-screening"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "json"

    host: str = "0.0.0.0"
    ingestion_service_port: int = 8080
    fraud_detection_service_port: int = 8081

    # Primary store (SQLite file)
    db_path: str = "./data/bank_aml.db"

    # Fast store (Redis)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Event bus (Kafka)
    kafka_brokers: str = "localhost:9092"
    kafka_transaction_topic: str = "bank.transactions.received"
    kafka_consumer_group: str = "fraud-detection-group"
    kafka_publish_timeout_seconds: float = 10.0
    kafka_publish_max_retries: int = 5

    shutdown_grace_seconds: float = 10.0

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.db_path}"

    @property
    def kafka_bootstrap_servers(self) -> list[str]:
        return [broker.strip() for broker in self.kafka_brokers.split(",") if broker.strip()]


settings = Settings()
