"""
Creator email alert tests
"""

import asyncio

import pytest

from fannu.actions import create_booking_request
from fannu.config import settings
from fannu.mailer import SendResult, SmtpSender
from fannu.notifier import CreatorNotifier


class RecordingSender:
    """Stands in for SmtpSender; keeps what would have been sent"""

    is_configured = True

    def __init__(self):
        self.outbox = []
        self.async_outbox = []

    def send(self, recipient, subject, html_content, sender_name="FanNu"):
        self.outbox.append((recipient, subject, html_content))
        return SendResult(recipient=recipient, success=True)

    async def send_async(self, recipient, subject, html_content, sender_name="FanNu"):
        self.async_outbox.append((recipient, subject, html_content))
        return SendResult(recipient=recipient, success=True)


class TestCreatorNotifier:
    """CreatorNotifier"""

    @pytest.fixture
    def sender(self):
        return RecordingSender()

    @pytest.fixture
    def booking(self, creator, booking_payload):
        return create_booking_request(booking_payload).data

    def test_booking_requested(self, sender, creator, booking):
        notifier = CreatorNotifier(sender=sender)

        assert notifier.booking_requested(creator, booking) is True

        recipient, subject, html = sender.outbox[0]
        assert recipient == creator.email
        assert booking.reference_code in subject
        assert "Abebe Kebede" in html
        assert f"/app/bookings/{booking.id}" in html

    def test_async_delivery_inside_event_loop(self, sender, creator, booking):
        """Web requests hand the email to the async sender instead of blocking"""
        notifier = CreatorNotifier(sender=sender)

        async def request():
            assert notifier.booking_requested(creator, booking) is True
            await asyncio.gather(*notifier.in_flight)

        asyncio.run(request())

        assert sender.outbox == []
        assert sender.async_outbox[0][0] == creator.email
        assert notifier.in_flight == set()

    def test_creator_without_email(self, sender, make_creator, booking):
        silent = make_creator(email=None)

        assert CreatorNotifier(sender=sender).booking_requested(silent, booking) is False
        assert sender.outbox == []

    def test_alerts_switched_off(self, sender, creator, booking, monkeypatch):
        monkeypatch.setattr(settings, "notify_creators", False)

        assert CreatorNotifier(sender=sender).booking_requested(creator, booking) is False
        assert sender.outbox == []


class TestSmtpSender:
    """SmtpSender without credentials"""

    def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "smtp_address", "")
        monkeypatch.setattr(settings, "smtp_password", "")
        sender = SmtpSender()

        result = sender.send("fan@example.com", "Hi", "<p>Hi</p>")

        assert sender.is_configured is False
        assert result.success is False
        assert result.error_message == "SMTP is not configured"

    def test_not_configured_async(self, monkeypatch):
        monkeypatch.setattr(settings, "smtp_address", "")
        monkeypatch.setattr(settings, "smtp_password", "")

        result = asyncio.run(SmtpSender().send_async("fan@example.com", "Hi", "<p>Hi</p>"))

        assert result.success is False
