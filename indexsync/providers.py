"""Centralized provider module for the content source, search index and checkpoint store.

This module provides factory functions that turn configuration into concrete
collaborators. Swap implementations here without changing the sync engine.

Default implementations:
- Content source: Contentful Sync API through the contentful SDK
- Search index: Algolia through the algoliasearch client ("memory" keeps records in-process)
- Checkpoint store: local file replaced atomically
"""

import structlog

from indexsync.ingestion.contentful_client import ContentfulClient
from indexsync.models.config import AppConfig
from indexsync.storage.search_index import AlgoliaIndex, InMemoryIndex, SearchIndex
from indexsync.sync.change_fetcher import ChangeSetFetcher, ContentfulChangeFetcher
from indexsync.sync.checkpoint_store import CheckpointStore, FileCheckpointStore

log = structlog.stdlib.get_logger()


def get_content_source(config: AppConfig) -> ChangeSetFetcher:
    """Get the configured change-set fetcher.

    Args:
        config: Application configuration

    Returns:
        ChangeSetFetcher backed by the Contentful Sync API

    Raises:
        RuntimeError: If the client cannot be initialized
    """
    contentful = config.contentful
    try:
        client = ContentfulClient(
            space_id=contentful.space_id,
            access_token=contentful.access_token,
            environment=contentful.environment,
            base_url=str(contentful.base_url),
            sync_type=contentful.sync_type,
            content_type=contentful.content_type,
            timeout_seconds=contentful.timeout_seconds,
            max_retries=config.sync.max_retries,
            base_retry_delay=config.sync.base_retry_delay,
            max_retry_delay=config.sync.max_retry_delay,
        )
    except Exception as e:
        log.error("get_content_source_failed", error=str(e), error_type=type(e).__name__)
        raise RuntimeError(f"Failed to initialize content source: {e}") from e

    return ContentfulChangeFetcher(client)


def get_search_index(config: AppConfig) -> SearchIndex:
    """Get the configured search index implementation.

    Args:
        config: Application configuration

    Returns:
        SearchIndex instance

    Raises:
        ValueError: If the index type is unknown or credentials are missing
    """
    index_config = config.search_index
    index_type = index_config.type.lower()

    log.info("initializing_search_index", type=index_type, index_name=index_config.index_name)

    if index_type == "memory":
        return InMemoryIndex()

    if index_type == "algolia":
        return AlgoliaIndex(
            app_id=index_config.app_id or "",
            api_key=index_config.api_key or "",
            index_name=index_config.index_name,
            wait_for_tasks=index_config.wait_for_tasks,
            max_retries=config.sync.max_retries,
            base_retry_delay=config.sync.base_retry_delay,
            max_retry_delay=config.sync.max_retry_delay,
        )

    error_msg = f"Unsupported search index type: {index_config.type}"
    log.error("get_search_index_failed", error=error_msg)
    raise ValueError(error_msg)


def get_checkpoint_store(config: AppConfig) -> CheckpointStore:
    """Get the configured checkpoint store.

    Raises:
        ValueError: If the checkpoint path is empty
    """
    path = config.checkpoint.path
    if not path or not path.strip():
        error_msg = "checkpoint.path cannot be empty"
        log.error("get_checkpoint_store_failed", error=error_msg)
        raise ValueError(error_msg)

    return FileCheckpointStore(path)
