"""Contentful client wrapper for the delivery Sync API."""

import time
from typing import Any, Callable
from urllib.parse import urlparse

import contentful
import structlog
from contentful.errors import HTTPError
from pydantic import BaseModel, Field
from requests.exceptions import ConnectionError, RequestException, Timeout

from indexsync.errors import FatalFetchError, TransientFetchError
from indexsync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()

# Statuses that mean the sync token itself was refused
TOKEN_REJECTED_STATUSES = frozenset({400, 404, 422})
UNAUTHORIZED_STATUSES = frozenset({401, 403})


class SyncResponse(BaseModel):
    """All raw items of one sync round plus the token to resume from."""

    items: list[dict[str, Any]] = Field(default_factory=list, description="Raw sync items")
    next_sync_token: str = Field(default=..., min_length=1, description="Token for the next round")
    page_count: int = Field(default=1, ge=1, description="Number of pages fetched")


class ContentfulClient:
    """Wrapper around the ``contentful`` delivery SDK's sync endpoint."""

    def __init__(
        self,
        space_id: str,
        access_token: str,
        environment: str = "master",
        base_url: str = "https://cdn.contentful.com",
        sync_type: str | None = None,
        content_type: str | None = None,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        base_retry_delay: float = 1.0,
        max_retry_delay: float = 60.0,
        client: contentful.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize Contentful client.

        Args:
            space_id: Contentful space id
            access_token: Content Delivery API token
            environment: Contentful environment
            base_url: Delivery API base URL
            sync_type: Optional item type filter for the initial sync
            content_type: Optional content type filter (only with sync_type="Entry")
            timeout_seconds: Timeout for each HTTP request
            max_retries: Retries for transient errors on each page request
            base_retry_delay: Initial backoff delay in seconds
            max_retry_delay: Maximum backoff delay in seconds
            client: Optional pre-built SDK client (one is created if None)
            sleep: Function used to wait between retries
        """
        if client is None:
            url = urlparse(str(base_url))
            client = contentful.Client(
                space_id,
                access_token,
                environment=environment,
                api_url=url.netloc,
                https=url.scheme != "http",
                timeout_s=timeout_seconds,
                # Content types are not needed to read raw sync items
                content_type_cache=False,
            )
        self._client = client
        self._sync_type = sync_type
        self._content_type = content_type

        self._fetch_page = exponential_backoff_retry(
            max_retries=max_retries,
            base_delay=base_retry_delay,
            max_delay=max_retry_delay,
            exceptions=(TransientFetchError,),
            sleep=sleep,
        )(self._fetch_page)

        log.info(
            "contentful_client_initialized",
            space_id=space_id,
            environment=environment,
            sync_type=sync_type,
            content_type=content_type,
        )

    def sync(self, sync_token: str | None = None) -> SyncResponse:
        """
        Run one sync round, following pagination until the next sync token.

        Args:
            sync_token: Token from the previous round, or None for an initial sync

        Returns:
            SyncResponse with every item of the round and the next sync token

        Raises:
            TransientFetchError: If the API stays unavailable after retries
            FatalFetchError: If the API rejects the token, the credentials or the request
        """
        initial = sync_token is None
        log.info("contentful_sync_started", initial=initial)

        query = self._initial_query() if initial else {"sync_token": sync_token}
        items: list[dict[str, Any]] = []
        page_count = 0

        while True:
            page = self._fetch_page(query, tokened=not initial or page_count > 0)
            page_count += 1
            items.extend(resource.raw for resource in page.items)

            next_token = getattr(page, "next_sync_token", None)
            if not next_token:
                raise FatalFetchError(
                    "Sync response contains neither nextPageUrl nor nextSyncUrl",
                    reason=FatalFetchError.REQUEST_REJECTED,
                )
            if not page.next_page_url:
                break
            query = {"sync_token": next_token}

        log.info(
            "contentful_sync_completed",
            initial=initial,
            item_count=len(items),
            page_count=page_count,
        )
        return SyncResponse(items=items, next_sync_token=next_token, page_count=page_count)

    def _initial_query(self) -> dict[str, Any]:
        query: dict[str, Any] = {"initial": True}
        if self._sync_type:
            query["type"] = self._sync_type
        if self._content_type:
            query["content_type"] = self._content_type
        return query

    def _fetch_page(self, query: dict[str, Any], tokened: bool) -> Any:
        """
        Fetch a single sync page through the SDK.

        Raises:
            TransientFetchError: On network errors, HTTP 429 and HTTP 5xx
            FatalFetchError: On other non-success statuses or an unreadable body
        """
        try:
            return self._client.sync(dict(query))
        except (ConnectionError, Timeout) as e:
            log.warning("contentful_request_failed", error=str(e))
            raise TransientFetchError(f"Contentful request failed: {e}") from e
        except RequestException as e:
            log.error("contentful_request_invalid", error=str(e))
            raise FatalFetchError(f"Contentful request could not be sent: {e}") from e
        except HTTPError as e:
            raise self._map_http_error(e, tokened) from e
        except (KeyError, IndexError) as e:
            # The SDK reads the next token out of the continuation URL
            raise FatalFetchError(f"Contentful sync page has no sync token: {e}") from e
        except ValueError as e:
            raise FatalFetchError(f"Contentful returned a non-JSON body: {e}") from e

    @staticmethod
    def _map_http_error(error: HTTPError, tokened: bool) -> Exception:
        status = getattr(error, "status_code", None) or 0
        if status == 429 or status >= 500:
            return TransientFetchError(f"Contentful returned HTTP {status}")

        if status in UNAUTHORIZED_STATUSES:
            reason = FatalFetchError.UNAUTHORIZED
        elif tokened and status in TOKEN_REJECTED_STATUSES:
            reason = FatalFetchError.TOKEN_REJECTED
        else:
            reason = FatalFetchError.REQUEST_REJECTED
        log.error("contentful_request_rejected", status_code=status, reason=reason)
        return FatalFetchError(
            f"Contentful rejected sync request with HTTP {status}: {error}",
            reason=reason,
            status_code=status or None,
        )
