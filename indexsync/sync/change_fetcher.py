"""Change-set fetching from the content source."""

from abc import ABC, abstractmethod
from typing import Any

import structlog
from pydantic import ValidationError

from indexsync.ingestion.contentful_client import ContentfulClient
from indexsync.models.content import ContentItem
from indexsync.sync.models import ChangeSet

log = structlog.stdlib.get_logger()

DELETED_KIND_PREFIX = "Deleted"


class ChangeSetFetcher(ABC):
    """Retrieves everything that changed since a continuation token."""

    @abstractmethod
    def fetch(self, token: str | None) -> ChangeSet:
        """
        Fetch the next change set.

        Args:
            token: Continuation token, or None for an initial (full) fetch

        Returns:
            ChangeSet with upserts, deletions and the token to resume from

        Raises:
            TransientFetchError: If the source is temporarily unavailable
            FatalFetchError: If the token, credentials or request are rejected
        """


class ContentfulChangeFetcher(ChangeSetFetcher):
    """Builds change sets from Contentful sync rounds."""

    def __init__(self, client: ContentfulClient):
        self._client = client

    def fetch(self, token: str | None) -> ChangeSet:
        is_initial = token is None
        log.info("fetching_change_set", initial=is_initial)

        response = self._client.sync(token)
        upserts, deletions = self._split_items(response.items)

        if is_initial and deletions:
            # An initial round describes current state only
            log.warning("initial_fetch_ignored_deletions", count=len(deletions))
            deletions = []

        change_set = ChangeSet(
            upserts=upserts,
            deletions=deletions,
            next_token=response.next_sync_token,
            is_initial=is_initial,
        )

        log.info(
            "change_set_fetched",
            initial=is_initial,
            upserts=len(change_set.upserts),
            deletions=len(change_set.deletions),
        )
        return change_set

    def _split_items(self, raw_items: list[dict[str, Any]]) -> tuple[list[ContentItem], list[str]]:
        """Separate live items from deletion markers.

        Later occurrences of the same id win, so each id appears at most once
        per list.
        """
        upserts: dict[str, ContentItem] = {}
        deletions: dict[str, None] = {}

        for raw in raw_items:
            sys = raw.get("sys") or {}
            item_id = sys.get("id")
            kind = sys.get("type", "")

            if not item_id:
                log.error("sync_item_without_id", kind=kind)
                continue

            if kind.startswith(DELETED_KIND_PREFIX):
                deletions[item_id] = None
                upserts.pop(item_id, None)
                continue

            try:
                item = to_content_item(raw)
            except (ValidationError, KeyError, TypeError) as e:
                log.error("failed_to_convert_sync_item", item_id=item_id, kind=kind, error=str(e))
                continue

            deletions.pop(item_id, None)
            upserts[item_id] = item

        return list(upserts.values()), list(deletions)


def to_content_item(raw: dict[str, Any]) -> ContentItem:
    """
    Convert a raw Contentful sync item to a ContentItem.

    Args:
        raw: Item with a ``sys`` block and optional ``fields``

    Returns:
        ContentItem

    Raises:
        KeyError: If required sys fields are missing
        ValidationError: If field values are malformed
    """
    sys = raw["sys"]
    content_type = (sys.get("contentType") or {}).get("sys", {}).get("id")

    return ContentItem(
        id=sys["id"],
        kind=sys["type"],
        created_at=sys["createdAt"],
        updated_at=sys.get("updatedAt", sys["createdAt"]),
        type_id=content_type,
        fields=raw.get("fields") or {},
    )
