"""Configuration models for the index synchronization service."""

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContentfulConfig(BaseModel):
    """Configuration for the Contentful delivery connection."""

    space_id: str = Field(default=..., min_length=1, description="Contentful space id")
    access_token: str = Field(default=..., min_length=1, description="Delivery API token")
    environment: str = Field(default="master", description="Contentful environment")
    base_url: HttpUrl = Field(
        default="https://cdn.contentful.com", description="Delivery API base URL"
    )
    sync_type: str | None = Field(
        default=None,
        description="Optional sync type filter (Entry, Asset, Deletion, DeletedEntry, ...)",
    )
    content_type: str | None = Field(
        default=None, description="Optional content type filter (requires sync_type=Entry)"
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")


class SearchIndexConfig(BaseModel):
    """Configuration for the search index."""

    type: str = Field(default="algolia", description="Search index type (algolia, memory)")
    app_id: str | None = Field(default=None, description="Algolia application id")
    api_key: str | None = Field(default=None, description="Algolia admin API key")
    index_name: str = Field(default=..., min_length=1, description="Target index name")
    wait_for_tasks: bool = Field(
        default=True, description="Wait for each indexing task to be published before returning"
    )


class CheckpointConfig(BaseModel):
    """Configuration for checkpoint persistence."""

    path: str = Field(default="./data/sync_token", description="File holding the sync token")


class SyncConfig(BaseModel):
    """Configuration for synchronization runs and triggering."""

    webhook_delay_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Quiescence delay between the last webhook event and the sync run",
    )
    trigger_events: list[str] = Field(
        default_factory=lambda: ["publish", "unpublish"],
        description="Webhook event kinds that schedule a sync",
    )
    batch_size: int = Field(default=1000, ge=1, le=10000, description="Records per index call")
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries for transient errors")
    base_retry_delay: float = Field(default=1.0, ge=0.0, description="Initial backoff delay")
    max_retry_delay: float = Field(default=60.0, ge=0.0, description="Maximum backoff delay")


class WebhookConfig(BaseModel):
    """Configuration for the inbound webhook listener."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=5000, ge=1, le=65535, description="Listen port")
    secret: str | None = Field(
        default=None, description="Shared secret expected in the X-Webhook-Secret header"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the APP_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    contentful: ContentfulConfig
    search_index: SearchIndexConfig
    checkpoint: CheckpointConfig = Field(default_factory=CheckpointConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
