"""
Email rendering - turns domain notifications into subject/HTML/text bodies.

Templates live next to this module in ``templates/`` as ``<kind>.html`` and
``<kind>.txt`` pairs. HTML is autoescaped; text is not.
"""

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from shoecreatify.domain.ports import Notification, NotificationKind

_TEMPLATE_DIR = Path(__file__).parent / "templates"

SUBJECTS: dict[NotificationKind, str] = {
    NotificationKind.VERIFICATION_OTP: "SHOECREATIFY - Verify Your Email",
    NotificationKind.WELCOME: "SHOECREATIFY - Account Verified! Start Creating",
    NotificationKind.LOGIN_ALERT: "SHOECREATIFY - New Login to Your Account",
    NotificationKind.PASSWORD_RESET_OTP: "SHOECREATIFY - Password Reset Code",
    NotificationKind.PASSWORD_CHANGED: "SHOECREATIFY - Your Password Was Changed",
}


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    html_body: str
    text_body: str


class EmailRenderer:
    def __init__(
        self,
        frontend_url: str,
        otp_minutes: int = 10,
        template_dir: Path = _TEMPLATE_DIR,
    ) -> None:
        self._defaults = {"frontend_url": frontend_url.rstrip("/"), "otp_minutes": otp_minutes}
        self._jinja = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render(self, notification: Notification) -> RenderedEmail:
        context = {**self._defaults, **notification.context}
        name = notification.kind.value
        return RenderedEmail(
            to=notification.to,
            subject=SUBJECTS[notification.kind],
            html_body=self._jinja.get_template(f"{name}.html").render(**context),
            text_body=self._jinja.get_template(f"{name}.txt").render(**context),
        )
