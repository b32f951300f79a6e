"""Search index storage"""

from indexsync.storage.search_index import AlgoliaIndex, InMemoryIndex, SearchIndex

__all__ = ["AlgoliaIndex", "InMemoryIndex", "SearchIndex"]
