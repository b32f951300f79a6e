"""Data models for the index synchronization service."""

from indexsync.models.config import (
    AppConfig,
    CheckpointConfig,
    ContentfulConfig,
    LoggingConfig,
    SearchIndexConfig,
    SyncConfig,
    WebhookConfig,
)
from indexsync.models.content import (
    RESERVED_KEYS,
    ContentItem,
    IndexRecord,
    to_index_record,
    to_index_records,
)

__all__ = [
    "ContentItem",
    "IndexRecord",
    "RESERVED_KEYS",
    "AppConfig",
    "CheckpointConfig",
    "ContentfulConfig",
    "LoggingConfig",
    "SearchIndexConfig",
    "SyncConfig",
    "WebhookConfig",
    "to_index_record",
    "to_index_records",
]
