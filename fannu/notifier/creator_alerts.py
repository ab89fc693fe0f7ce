"""
Creator email alerts: new booking requests and paid deposits
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import settings
from ..database.models import Booking, BookingPayment, Creator
from ..mailer import SmtpSender, get_sender
from ..utils import format_etb, format_datetime, format_phone_number

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "web" / "templates" / "email"


class EmailRenderer:
    """Jinja2 renderer for notification emails"""

    def __init__(self, template_dir: str = None):
        self.template_dir = Path(template_dir) if template_dir else TEMPLATE_DIR
        self._env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["etb"] = format_etb
        self._env.filters["datetime"] = format_datetime
        self._env.filters["phone"] = format_phone_number
        self._env.globals["base_url"] = settings.base_url.rstrip("/")
        self._env.globals["support_link"] = settings.support_link

    def render(self, template_name: str, **context) -> str:
        return self._env.get_template(template_name).render(**context)


class CreatorNotifier:
    """
    Sends booking alerts to the creator's email address.

    Inside a running event loop (the web app) delivery is scheduled with
    SmtpSender.send_async so the request does not wait on SMTP; the
    scheduler and scripts send synchronously.
    """

    def __init__(self, sender: Optional[SmtpSender] = None, renderer: Optional[EmailRenderer] = None):
        self.sender = sender or get_sender()
        self.renderer = renderer or EmailRenderer()
        self.in_flight: set[asyncio.Task] = set()

    def _log_outcome(self, task: asyncio.Task) -> None:
        self.in_flight.discard(task)
        if task.cancelled():
            return
        result = task.result()
        if not result.success:
            logger.warning("Alert to %s failed: %s", result.recipient, result.error_message)

    def _deliver(self, creator: Creator, subject: str, html_content: str) -> bool:
        if not settings.notify_creators:
            return False
        if not creator.email:
            logger.debug("Creator %s has no email; alert skipped", creator.slug)
            return False
        if not self.sender.is_configured:
            logger.debug("SMTP not configured; alert to %s skipped", creator.slug)
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            result = self.sender.send(recipient=creator.email, subject=subject, html_content=html_content)
            return result.success

        task = loop.create_task(
            self.sender.send_async(recipient=creator.email, subject=subject, html_content=html_content)
        )
        self.in_flight.add(task)
        task.add_done_callback(self._log_outcome)
        return True

    def booking_requested(self, creator: Creator, booking: Booking) -> bool:
        html = self.renderer.render("booking_requested.html", creator=creator, booking=booking)
        return self._deliver(creator, f"New booking request {booking.reference_code}", html)

    def deposit_paid(self, creator: Creator, booking: Booking, payment: BookingPayment) -> bool:
        html = self.renderer.render("deposit_paid.html", creator=creator, booking=booking, payment=payment)
        return self._deliver(creator, f"Deposit received for {booking.reference_code}", html)


_notifier: Optional[CreatorNotifier] = None


def get_notifier() -> CreatorNotifier:
    global _notifier
    if _notifier is None:
        _notifier = CreatorNotifier()
    return _notifier


def set_notifier(notifier: Optional[CreatorNotifier]) -> None:
    """Swap the shared notifier (tests pass a fake)"""
    global _notifier
    _notifier = notifier
