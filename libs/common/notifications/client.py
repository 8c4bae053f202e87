"""
Push notification client for service-to-service notification delivery.

Usage:
    from libs.common.notifications import get_notification_client

    notifier = get_notification_client()

    await notifier.notify_partner(
        partner_id,
        "Accepted Booking",
        "Lead acceptance fee of ₹50 has been deducted.",
    )

    await notifier.notify_all_admins(
        "Booking Accepted by Partner",
        "Partner Ravi has accepted booking #42.",
        severity=NotificationSeverity.INFO,
    )

Both calls are fire-and-forget: they return ``True``/``False`` and log
failures instead of raising.
"""

import enum
import uuid
from typing import Any, Optional, Union

import httpx

from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.service_client import internal_post

logger = get_logger(__name__)

# FCM truncates long bodies; keep the preview short.
_MAX_BODY_PREVIEW = 100


class NotificationSeverity(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def _preview(message: str) -> str:
    if len(message) > _MAX_BODY_PREVIEW:
        return message[: _MAX_BODY_PREVIEW - 3] + "..."
    return message


class NotificationClient:
    """
    HTTP client for pushing notifications through the Communications Service.

    The Communications Service stores the notification in the recipient's
    inbox and sends the FCM push when a device token is registered.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.COMMUNICATIONS_SERVICE_URL
        self.timeout = timeout or settings.NOTIFICATION_TIMEOUT_SECONDS
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled
        self.calling_service = settings.SERVICE_NAME

    async def notify_partner(
        self,
        partner_id: Union[uuid.UUID, str],
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
    ) -> bool:
        """Notify a single partner. Returns True if the service accepted it."""
        payload = {
            "partner_id": str(partner_id),
            "title": title,
            "message": message,
            "preview": _preview(message),
            "type": NotificationSeverity(severity).value,
        }
        return await self._post(
            f"/internal/notifications/partners/{partner_id}", payload
        )

    async def notify_all_admins(
        self,
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
    ) -> bool:
        """Broadcast to every admin. Returns True if the service accepted it."""
        payload = {
            "title": title,
            "message": message,
            "preview": _preview(message),
            "type": NotificationSeverity(severity).value,
        }
        return await self._post("/internal/notifications/admins", payload)

    async def _post(self, path: str, payload: dict[str, Any]) -> bool:
        if not self.enabled:
            logger.debug("Notifications disabled; dropping %s", payload["title"])
            return False

        try:
            response = await internal_post(
                service_url=self.base_url,
                path=path,
                calling_service=self.calling_service,
                json=payload,
                timeout=self.timeout,
            )
        except httpx.RequestError as e:
            logger.error(f"Failed to connect to Communications Service: {e}")
            return False
        except Exception:
            logger.exception("Error sending notification %r", payload["title"])
            return False

        if response.status_code >= 400:
            logger.error(
                f"Notification API returned {response.status_code}: {response.text}"
            )
            return False
        return True


# Singleton instance for convenience
_notification_client: Optional[NotificationClient] = None


def get_notification_client() -> NotificationClient:
    """Get or create the singleton NotificationClient instance."""
    global _notification_client
    if _notification_client is None:
        _notification_client = NotificationClient()
    return _notification_client
