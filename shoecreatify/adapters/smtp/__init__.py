"""Email adapters - transports, rendering and dispatch."""

from .console import ConsoleEmailSender
from .dispatcher import NotificationDispatcher
from .renderer import EmailRenderer, RenderedEmail
from .sender import SmtpEmailSender

__all__ = [
    "ConsoleEmailSender",
    "EmailRenderer",
    "NotificationDispatcher",
    "RenderedEmail",
    "SmtpEmailSender",
]
