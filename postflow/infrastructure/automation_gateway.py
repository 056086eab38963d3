# postflow/infrastructure/automation_gateway.py
from typing import List, Optional, Sequence

import httpx
import structlog

from ..models.post import MediaFile, Post
from ..services.errors import UpstreamError

logger = structlog.get_logger(__name__)


class AutomationGatewayError(UpstreamError):
    pass


def media_url(base_url: str, file_name: str) -> str:
    return f"{base_url.rstrip('/')}/uploads/media/{file_name}"


class AutomationGateway:
    """
    Outbound side of the n8n integration: hands a post to the automation
    workflow, which publishes it and later calls back the webhook route.
    """

    def __init__(
        self,
        webhook_url: str,
        backend_url: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.backend_url = backend_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def callback_url(self, post_id) -> str:
        return f"{self.backend_url}/posts/{post_id}/webhook-status"

    def build_payload(self, post: Post, platforms: Sequence[str], media_files: Sequence[MediaFile]) -> dict:
        return {
            "postId": str(post.id),
            "userId": str(post.user_id),
            "caption": post.caption,
            "platforms": list(platforms),
            "postingMode": post.posting_mode,
            "scheduledAt": post.scheduled_at.isoformat() if post.scheduled_at else None,
            "mediaFiles": [
                {
                    "fileName": m.file_name,
                    "fileType": m.file_type,
                    "mimeType": m.mime_type,
                    "url": media_url(self.backend_url, m.file_name),
                }
                for m in media_files
            ],
            "callbackUrl": self.callback_url(post.id),
        }

    async def trigger_publish(self, post: Post, platforms: List[str], media_files: List[MediaFile]) -> dict:
        payload = self.build_payload(post, platforms, media_files)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("automation_trigger_transport_error", post_id=str(post.id), error=str(exc))
            raise AutomationGatewayError(f"request to automation engine failed: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "automation_trigger_rejected", post_id=str(post.id), status_code=response.status_code
            )
            raise AutomationGatewayError(
                f"automation engine responded {response.status_code}: {response.reason_phrase}"
            )

        if not response.content:
            ack = {}
        else:
            try:
                ack = response.json()
            except ValueError as exc:
                raise AutomationGatewayError("automation engine returned a non-JSON response") from exc

        logger.info("automation_triggered", post_id=str(post.id), platforms=list(platforms))
        return ack if isinstance(ack, dict) else {"response": ack}
