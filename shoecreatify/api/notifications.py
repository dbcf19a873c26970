"""
Background notification queue - Implements NotificationQueue protocol.

Notifications are handed to FastAPI's BackgroundTasks and delivered after
the response has been sent, so SMTP latency or failure never reaches the
client.
"""

from fastapi import BackgroundTasks

from shoecreatify.adapters.smtp import NotificationDispatcher
from shoecreatify.domain.ports import Notification


class BackgroundNotificationQueue:
    """Per-request queue bound to the request's BackgroundTasks."""

    def __init__(self, background_tasks: BackgroundTasks, dispatcher: NotificationDispatcher) -> None:
        self.background_tasks = background_tasks
        self.dispatcher = dispatcher

    def enqueue(self, notification: Notification) -> None:
        self.background_tasks.add_task(self.dispatcher.deliver, notification)
