"""
Partner/admin push notifications.

Notifications are delivered by the Communications Service (FCM + the
in-app notification inbox). Services use :class:`NotificationClient` to hand
a notification over; delivery failures never propagate to the caller.
"""

from libs.common.notifications.client import (  # noqa: F401
    NotificationClient,
    NotificationSeverity,
    get_notification_client,
)

__all__ = [
    "NotificationClient",
    "NotificationSeverity",
    "get_notification_client",
]
