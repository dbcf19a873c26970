"""
Notification dispatcher - renders a notification and hands it to the sender.

``deliver`` is the unit of work run after the HTTP response is prepared.
Whatever goes wrong in rendering or transport ends up in the log and in
the returned SendResult, never in an exception.
"""

import logging

from shoecreatify.domain.ports import EmailSender, Notification, SendResult

from .renderer import EmailRenderer

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, sender: EmailSender, renderer: EmailRenderer) -> None:
        self.sender = sender
        self.renderer = renderer

    async def deliver(self, notification: Notification) -> SendResult:
        try:
            email = self.renderer.render(notification)
            result = await self.sender.send(
                email.to, email.subject, email.html_body, email.text_body
            )
        except Exception as e:
            logger.exception("Notification %s to %s failed", notification.kind.value, notification.to)
            return SendResult(success=False, error=str(e))

        if not result.success:
            logger.warning(
                "Notification %s to %s not delivered: %s",
                notification.kind.value,
                notification.to,
                result.error,
            )
        return result
