"""
Shared fixtures: a fresh in-memory database per test and creator/drop factories
"""

import sys
from datetime import timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from fannu.database import init_db, dispose_db, get_session, CreatorRepository, DropRepository
from fannu.database.models import CreatorStatus, DropStatus, DropType
from fannu.notifier import set_notifier
from fannu.utils import utcnow
from fannu.web.page_cache import page_cache


class FakeNotifier:
    """Records creator alerts instead of sending email"""

    def __init__(self):
        self.sent = []

    def booking_requested(self, creator, booking):
        self.sent.append(("booking_requested", creator.slug, booking.reference_code))
        return True

    def deposit_paid(self, creator, booking, payment):
        self.sent.append(("deposit_paid", creator.slug, payment.receipt_id))
        return True


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test"""
    dispose_db()
    init_db("sqlite://")
    page_cache.clear()
    yield
    page_cache.clear()
    dispose_db()


@pytest.fixture(autouse=True)
def notifier():
    fake = FakeNotifier()
    set_notifier(fake)
    yield fake
    set_notifier(None)


@pytest.fixture
def make_creator():
    """Factory for creators; ACTIVE and open for bookings unless told otherwise"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "user_id": f"user-{n}",
            "slug": f"artist-{n}",
            "display_name": f"Artist {n}",
            "phone": f"+25191100000{n}",
            "email": f"artist{n}@example.com",
            "status": CreatorStatus.ACTIVE,
            "booking_enabled": True,
            "booking_approved": True,
        }
        fields.update(overrides)
        with get_session() as session:
            return CreatorRepository.create(session, **fields)

    return _make


@pytest.fixture
def creator(make_creator):
    return make_creator(slug="teddy", display_name="Teddy Afro")


@pytest.fixture
def make_drop(creator):
    """Factory for drops owned by `creator`; LIVE with 10 slots by default"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "creator_id": creator.id,
            "slug": f"drop-{counter['n']}",
            "title": f"Meet and greet {counter['n']}",
            "description": "Backstage pass after the show",
            "type": DropType.EVENT,
            "status": DropStatus.LIVE,
            "price": 50000,
            "currency": "ETB",
            "total_slots": 10,
            "slots_remaining": 10,
        }
        fields.update(overrides)
        with get_session() as session:
            return DropRepository.create(session, **fields)

    return _make


@pytest.fixture
def live_drop(make_drop):
    return make_drop()


@pytest.fixture
def booking_payload(creator):
    """A valid public booking request for `creator`"""
    start = utcnow() + timedelta(days=30)
    return {
        "creator_slug": creator.slug,
        "booker_name": "Abebe Kebede",
        "booker_phone": "0911223344",
        "booker_email": "abebe@example.com",
        "type": "LIVE_PERFORMANCE",
        "start_at": start.isoformat(),
        "end_at": (start + timedelta(hours=4)).isoformat(),
        "location_city": "Addis Ababa",
        "location_venue": "Millennium Hall",
        "budget_min": 5000000,
        "budget_max": 8000000,
        "notes": "Wedding reception, two sets with a short break in between.",
    }


@pytest.fixture
def quote_payload():
    return {
        "total_amount": 6000000,
        "deposit_percent": 30,
        "deposit_refundable": False,
        "expires_in_hours": 48,
        "terms_text": "Deposit secures the date. Balance is due on the day of the event.",
    }
