"""Shared utilities for configuration, logging, and error handling"""

from indexsync.utils.retry import exponential_backoff_retry

__all__ = ["exponential_backoff_retry"]
