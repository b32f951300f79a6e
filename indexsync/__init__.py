"""Incremental synchronization of a Contentful space into a search index."""

__version__ = "0.1.0"
