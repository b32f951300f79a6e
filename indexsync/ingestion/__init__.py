"""Content source clients"""

from indexsync.ingestion.contentful_client import ContentfulClient, SyncResponse

__all__ = ["ContentfulClient", "SyncResponse"]
