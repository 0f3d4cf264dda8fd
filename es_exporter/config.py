import logging
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ES_EXPORTER_")

    app_name: str = "Elasticsearch Exporter"
    es_url: str = Field("http://localhost:9200", description="Elasticsearch base URL.")
    bind_host: str = Field("0.0.0.0", description="Address the /metrics endpoint binds to.")
    bind_port: int = Field(9092, description="Port the /metrics endpoint binds to.")
    scrape_interval_seconds: int = Field(
        5, ge=1, description="Time interval between node stats scrape runs."
    )
    request_timeout_seconds: float = Field(
        10.0, gt=0, description="Timeout of a single request to Elasticsearch."
    )
    username: Optional[str] = Field(
        None, description="Username when X-Pack security is enabled."
    )
    password: Optional[SecretStr] = Field(
        None, description="Password for the user when X-Pack security is enabled."
    )
    enable_siren: bool = Field(False, description="Enable Siren Federate plugin scraping.")
    snapshot_repository: Optional[str] = Field(
        None, description="Snapshot repository to report the last snapshot of."
    )
    namespace: str = Field("es", description="Prefix of every published metric name.")
    log_level: str = Field("INFO", description="Root logging level.")

    @field_validator("es_url")
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def password_value(self) -> Optional[str]:
        return self.password.get_secret_value() if self.password else None


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


settings = Settings()
