"""Config file."""
import logging
from urllib.parse import quote_plus

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bridge_indexer.app.domain.addresses import normalize_l1_address, normalize_l2_address


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field("bridge-indexer", alias="PROJECT_NAME")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # DATABASE
    postgres_user: str | None = Field(None, alias="POSTGRES_USER")
    postgres_password: SecretStr | None = Field(None, alias="POSTGRES_PASSWORD")
    postgres_server: str | None = Field(None, alias="POSTGRES_SERVER")
    postgres_port: int = Field(5432, alias="POSTGRES_PORT")
    postgres_db: str | None = Field(None, alias="POSTGRES_DB")
    database_url: str | None = Field(None, alias="DATABASE_URL")

    # CHAINS
    network: str = Field("sandbox", alias="NETWORK")
    rpc_timeout_seconds: float = Field(30.0, alias="RPC_TIMEOUT_SECONDS", gt=0)
    polling_interval_ms: int = Field(30_000, alias="POLLING_INTERVAL_MS", ge=0)

    # L1
    l1_rpc_url: str = Field(..., alias="L1_RPC_URL")
    l1_start_block: int = Field(0, alias="L1_START_BLOCK", ge=0)
    l1_chunk_size: int = Field(1000, alias="L1_CHUNK_SIZE", gt=0)
    l1_portal_address: str = Field(..., alias="L1_PORTAL_ADDRESS")
    l1_allow_list_address: str | None = Field(None, alias="L1_ALLOW_LIST_ADDRESS")
    l1_inbox_address: str | None = Field(None, alias="L1_INBOX_ADDRESS")
    force_l1_start_block: int | None = Field(None, alias="FORCE_L1_START_BLOCK", ge=0)

    # L2
    l2_node_url: str = Field(..., alias="L2_NODE_URL")
    l2_start_block: int = Field(1, alias="L2_START_BLOCK", ge=0)
    l2_chunk_size: int = Field(100, alias="L2_CHUNK_SIZE", gt=0)
    l2_portal_address: str = Field(..., alias="L2_PORTAL_ADDRESS")
    l2_node_schema_version: int = Field(1, alias="L2_NODE_SCHEMA_VERSION")
    l2_register_event_selector: int | None = Field(None, alias="L2_REGISTER_EVENT_SELECTOR")
    force_l2_start_block: int | None = Field(None, alias="FORCE_L2_START_BLOCK", ge=0)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @field_validator("l1_portal_address", "l1_allow_list_address", "l1_inbox_address")
    @classmethod
    def _normalize_l1(cls, v: str | None) -> str | None:
        return normalize_l1_address(v) if v else None

    @field_validator("l2_portal_address")
    @classmethod
    def _normalize_l2(cls, v: str) -> str:
        return normalize_l2_address(v)

    @field_validator("l2_register_event_selector", mode="before")
    @classmethod
    def _parse_selector(cls, v: object) -> object:
        # Accept hex ("0x1a2b3c4d") as well as decimal
        if isinstance(v, str) and v.strip().lower().startswith("0x"):
            return int(v.strip(), 16)
        return v

    @model_validator(mode="after")
    def assemble_db_url(self) -> "Settings":
        if not self.database_url:
            if not (self.postgres_user and self.postgres_password and self.postgres_server and self.postgres_db):
                raise ValueError(
                    "Either DATABASE_URL or POSTGRES_USER/POSTGRES_PASSWORD/POSTGRES_SERVER/POSTGRES_DB must be set"
                )
            user = quote_plus(self.postgres_user)
            password = quote_plus(self.postgres_password.get_secret_value())
            host = self.postgres_server
            port = self.postgres_port
            db = self.postgres_db

            self.database_url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

        return self

    @property
    def polling_interval_seconds(self) -> float:
        return self.polling_interval_ms / 1000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )


settings: Settings = Settings()
