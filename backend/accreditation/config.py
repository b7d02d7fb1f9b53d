from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "Journal Accreditation Engine"
    debug: bool = False
    api_key: str = "changeme"

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "accreditation"
    postgres_password: str = "accreditation"
    postgres_db: str = "accreditation"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (dashboard statistics cache)
    redis_url: str = "redis://localhost:6379/0"
    stats_cache_ttl_seconds: int = 600

    # Kafka (status-change events, consumed by notification delivery)
    kafka_bootstrap_servers: str = "localhost:9092"
    events_enabled: bool = False

    # Workflow rules
    revision_notes_min_length: int = 50
    approval_notes_min_length: int = 0
    # When disabled, an institutional approval is final (status goes straight to "reviewed")
    reviewer_stage_enabled: bool = True

    # Attachments
    storage_root: str = "storage/assessments"
    max_attachment_bytes: int = 5 * 1024 * 1024
    allowed_attachment_types: list[str] = [
        "application/pdf",
        "image/jpeg",
        "image/png",
    ]

    model_config = {"env_prefix": "ACCREDITATION_", "env_file": ".env"}


settings = Settings()
