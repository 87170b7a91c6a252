"""
Application configuration from environment variables.
Settings class using pydantic-settings with optional validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from backend root so it loads when running from backend/ or project root
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment and .env.
    Defaults target a local broker and an unconfigured Salesforce org; validate for production.
    """

    # Application
    ENVIRONMENT: str = "development"
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Salesforce (system of record)
    salesforce_instance_url: str = Field(
        default="",
        description="Org instance URL, e.g. https://acme.my.salesforce.com",
        validation_alias="SALESFORCE_INSTANCE_URL",
    )
    salesforce_access_token: str = Field(
        default="",
        description="OAuth access token (Bearer auth); refresh is handled outside this service",
        validation_alias="SALESFORCE_ACCESS_TOKEN",
    )
    salesforce_api_version: str = Field(
        default="v59.0",
        validation_alias="SALESFORCE_API_VERSION",
    )
    salesforce_external_id_field: str = Field(
        default="",
        description="External ID field on Account used for idempotent upserts (e.g. Idempotency_Key__c)",
        validation_alias="SALESFORCE_EXTERNAL_ID_FIELD",
    )
    salesforce_max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for idempotent upserts only; plain creates are never retried",
        validation_alias="SALESFORCE_MAX_RETRIES",
    )
    record_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="RECORD_TIMEOUT_SECONDS",
    )
    idempotency_ttl_seconds: float = Field(
        default=24 * 60 * 60,
        gt=0,
        validation_alias="IDEMPOTENCY_TTL_SECONDS",
    )

    # Event channel (Kafka)
    event_bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Comma-separated broker list",
        validation_alias="EVENT_BOOTSTRAP_SERVERS",
    )
    event_destination: str = Field(
        default="account-events",
        description="Topic that receives AccountEvent documents",
        validation_alias="EVENT_DESTINATION",
    )
    event_source: str = Field(
        default="account-events-api",
        description="Fixed identifier stamped on every published event",
        validation_alias="EVENT_SOURCE",
    )
    event_security_protocol: str = Field(
        default="PLAINTEXT",
        validation_alias="EVENT_SECURITY_PROTOCOL",
    )
    event_sasl_mechanism: str = Field(
        default="PLAIN",
        validation_alias="EVENT_SASL_MECHANISM",
    )
    event_sasl_username: str = Field(default="", validation_alias="EVENT_SASL_USERNAME")
    event_sasl_password: str = Field(default="", validation_alias="EVENT_SASL_PASSWORD")
    publish_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias="PUBLISH_TIMEOUT_SECONDS",
    )

    @field_validator("salesforce_instance_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator("salesforce_api_version", mode="before")
    @classmethod
    def normalize_api_version(cls, v: object) -> object:
        """Accept both '59.0' and 'v59.0'."""
        if isinstance(v, str):
            v = v.strip()
            if v and not v.startswith("v"):
                return f"v{v}"
        return v

    @field_validator("log_level", "event_security_protocol", "event_sasl_mechanism", mode="before")
    @classmethod
    def upper_case(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def bootstrap_servers_list(self) -> List[str]:
        """Parse EVENT_BOOTSTRAP_SERVERS from a comma-separated string."""
        return [x.strip() for x in self.event_bootstrap_servers.split(",") if x.strip()]

    def validate_for_production(self) -> None:
        """
        Call to validate that required env vars are set (e.g. on startup in production).
        Raises ValueError with missing keys.
        """
        missing: List[str] = []
        if not self.salesforce_instance_url:
            missing.append("SALESFORCE_INSTANCE_URL")
        if not self.salesforce_access_token:
            missing.append("SALESFORCE_ACCESS_TOKEN")
        if not self.bootstrap_servers_list:
            missing.append("EVENT_BOOTSTRAP_SERVERS")
        if not self.event_destination:
            missing.append("EVENT_DESTINATION")
        if self.event_security_protocol.startswith("SASL") and not (
            self.event_sasl_username and self.event_sasl_password
        ):
            missing.append("EVENT_SASL_USERNAME and EVENT_SASL_PASSWORD")
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
