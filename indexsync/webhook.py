"""HTTP endpoint receiving Contentful webhook notifications."""

import hmac

import structlog
from fastapi import FastAPI, Header, HTTPException, status
from pydantic import BaseModel, Field

from indexsync.service import SyncService

log = structlog.stdlib.get_logger()

WEBHOOK_PATH = "/webhooks/contentful"


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the webhook sender."""

    accepted: bool = Field(..., description="True if the event scheduled a sync run")
    event: str = Field(..., description="Event kind parsed from the topic header")


class HealthResponse(BaseModel):
    """Current synchronization state."""

    status: str = "ok"
    has_checkpoint: bool
    running: bool
    sync_pending: bool


def event_kind_from_topic(topic: str) -> str:
    """Extract the event kind from a topic such as ``ContentManagement.Entry.publish``."""
    return topic.rsplit(".", 1)[-1].strip()


def create_app(service: SyncService, secret: str | None = None) -> FastAPI:
    """
    Build the webhook application.

    Args:
        service: Sync service receiving the events
        secret: Optional shared secret expected in the X-Webhook-Secret header

    Returns:
        FastAPI application
    """
    app = FastAPI(title="indexsync webhook listener")

    @app.post(WEBHOOK_PATH, response_model=WebhookResponse, status_code=status.HTTP_202_ACCEPTED)
    def receive_webhook(
        x_contentful_topic: str | None = Header(default=None),
        x_webhook_secret: str | None = Header(default=None),
    ) -> WebhookResponse:
        if secret and not hmac.compare_digest(x_webhook_secret or "", secret):
            log.warning("webhook_rejected_bad_secret")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret")

        if not x_contentful_topic:
            log.warning("webhook_missing_topic")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Missing X-Contentful-Topic"
            )

        event = event_kind_from_topic(x_contentful_topic)
        accepted = service.handle_event(event)
        log.info("webhook_received", topic=x_contentful_topic, event_kind=event, accepted=accepted)
        return WebhookResponse(accepted=accepted, event=event)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(**service.status())

    return app
