"""
Advisor notifications for new bookings
"""

import logging

from ..domain.bookings.side_effects import MeetingDetails
from ..email_service import send_meeting_notification_to_advisor
from ..errors import SideEffectError

logger = logging.getLogger(__name__)


class EmailNotificationService:
    """Sends the link owner an email for every new meeting"""

    async def notify_owner(self, details: MeetingDetails) -> None:
        if not details.owner_email:
            raise SideEffectError("No advisor email available for notification")

        logger.info(f"Sending meeting notification for {details.meeting_id} to {details.owner_email}")
        try:
            await send_meeting_notification_to_advisor(details)
        except Exception as e:
            raise SideEffectError(f"Failed to notify advisor: {e}") from e
        logger.info(f"Meeting notification sent to {details.owner_email}")
