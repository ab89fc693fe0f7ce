"""
Booking workflow tests
"""

import re
from datetime import timedelta

import pytest

from fannu.actions import (
    BOOKING_TRANSITIONS,
    INVALID_STATE,
    NOT_FOUND,
    VALIDATION_ERROR,
    can_transition,
    cancel_booking,
    complete_booking,
    compute_deposit,
    confirm_booking,
    create_booking_request,
    decline_booking,
    send_quote,
)
from fannu.database.models import ActorType, BookingStatus, QuoteStatus
from fannu.queries import (
    get_booking_by_id,
    get_booking_by_reference_code,
    get_booking_stats_by_creator_id,
    get_pending_bookings_count,
)
from fannu.utils import utcnow


class TestTransitions:
    """BOOKING_TRANSITIONS and compute_deposit"""

    def test_terminal_states(self):
        for status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED,
                       BookingStatus.DECLINED, BookingStatus.DISPUTED):
            assert BOOKING_TRANSITIONS[status] == set()

    def test_every_status_listed(self):
        assert set(BOOKING_TRANSITIONS) == set(BookingStatus)

    def test_requested_moves(self):
        assert can_transition(BookingStatus.REQUESTED, BookingStatus.QUOTED)
        assert can_transition(BookingStatus.REQUESTED, BookingStatus.DECLINED)
        assert not can_transition(BookingStatus.REQUESTED, BookingStatus.CONFIRMED)
        assert not can_transition(BookingStatus.REQUESTED, BookingStatus.DEPOSIT_PAID)

    def test_requote(self):
        """QUOTED -> QUOTED is how a new quote replaces the old one"""
        assert can_transition(BookingStatus.QUOTED, BookingStatus.QUOTED)

    def test_deposit_must_precede_confirmation(self):
        assert not can_transition(BookingStatus.QUOTED, BookingStatus.CONFIRMED)
        assert can_transition(BookingStatus.DEPOSIT_PAID, BookingStatus.CONFIRMED)

    @pytest.mark.parametrize("total,percent,expected", [
        (6000000, 30, 1800000),
        (1001, 50, 501),
        (999, 10, 100),
        (100000, 100, 100000),
    ])
    def test_compute_deposit(self, total, percent, expected):
        assert compute_deposit(total, percent) == expected


class TestCreateBookingRequest:
    """create_booking_request"""

    def test_creates_requested_booking(self, creator, booking_payload, notifier):
        result = create_booking_request(booking_payload)

        assert result.success
        booking = result.data
        assert booking.status == BookingStatus.REQUESTED
        assert booking.creator_id == creator.id
        assert booking.booker_phone == "+251911223344"
        assert re.fullmatch(r"BK-[A-HJ-NP-Z2-9]{4}", booking.reference_code)
        assert notifier.sent == [("booking_requested", creator.slug, booking.reference_code)]

    def test_event_logged(self, booking_payload):
        booking_id = create_booking_request(booking_payload).data.id

        booking = get_booking_by_id(booking_id)

        assert [e.event_type for e in booking.events] == ["BOOKING_REQUESTED"]
        assert booking.events[0].actor_type == ActorType.BOOKER

    def test_lookup_by_reference_code(self, booking_payload):
        code = create_booking_request(booking_payload).data.reference_code

        assert get_booking_by_reference_code(code.lower()).reference_code == code

    def test_attachments_stored_as_strings(self, booking_payload):
        booking_payload["attachments"] = ["https://example.com/rider.pdf"]

        booking = create_booking_request(booking_payload).data

        assert booking.attachments == ["https://example.com/rider.pdf"]

    def test_too_many_attachments(self, booking_payload):
        booking_payload["attachments"] = [f"https://example.com/{n}.pdf" for n in range(4)]

        assert create_booking_request(booking_payload).code == VALIDATION_ERROR

    def test_past_date(self, booking_payload):
        start = utcnow() - timedelta(days=1)
        booking_payload["start_at"] = start.isoformat()
        booking_payload["end_at"] = (start + timedelta(hours=2)).isoformat()

        result = create_booking_request(booking_payload)

        assert result.code == VALIDATION_ERROR
        assert "start_at" in result.field_errors

    def test_end_before_start(self, booking_payload):
        booking_payload["end_at"] = booking_payload["start_at"]

        assert "end_at" in create_booking_request(booking_payload).field_errors

    def test_budget_range(self, booking_payload):
        booking_payload["budget_max"] = booking_payload["budget_min"] - 1

        assert "budget_max" in create_booking_request(booking_payload).field_errors

    def test_short_notes(self, booking_payload):
        booking_payload["notes"] = "Wedding"

        assert "notes" in create_booking_request(booking_payload).field_errors

    def test_unknown_creator(self, booking_payload):
        booking_payload["creator_slug"] = "nobody"

        assert create_booking_request(booking_payload).code == NOT_FOUND

    def test_bookings_not_approved(self, make_creator, booking_payload, notifier):
        """Creators must enable bookings and be approved for them"""
        closed = make_creator(booking_approved=False)
        booking_payload["creator_slug"] = closed.slug

        assert create_booking_request(booking_payload).code == INVALID_STATE
        assert notifier.sent == []


class TestQuotes:
    """send_quote"""

    @pytest.fixture
    def booking(self, booking_payload):
        return create_booking_request(booking_payload).data

    def test_quote_moves_to_quoted(self, booking, quote_payload):
        result = send_quote(booking.id, quote_payload)

        assert result.success
        quote = result.data
        assert quote.status == QuoteStatus.ACTIVE
        assert quote.deposit_amount == 1800000
        assert quote.currency == "ETB"
        assert 47 <= (quote.expires_at - utcnow()).total_seconds() / 3600 <= 48
        assert get_booking_by_id(booking.id).status == BookingStatus.QUOTED

    def test_new_quote_supersedes(self, booking, quote_payload):
        first = send_quote(booking.id, quote_payload).data
        quote_payload["total_amount"] = 7000000
        second = send_quote(booking.id, quote_payload).data

        quotes = {q.id: q.status for q in get_booking_by_id(booking.id).quotes}

        assert quotes == {first.id: QuoteStatus.SUPERSEDED, second.id: QuoteStatus.ACTIVE}

    def test_unknown_expiry(self, booking, quote_payload):
        quote_payload["expires_in_hours"] = 12

        result = send_quote(booking.id, quote_payload)

        assert "expires_in_hours" in result.field_errors
        assert get_booking_by_id(booking.id).status == BookingStatus.REQUESTED

    def test_deposit_percent_floor(self, booking, quote_payload):
        quote_payload["deposit_percent"] = 5

        assert send_quote(booking.id, quote_payload).code == VALIDATION_ERROR

    def test_quote_on_declined_booking(self, booking, quote_payload):
        """The rejected transition also rolls back the superseding"""
        decline_booking(booking.id)

        result = send_quote(booking.id, quote_payload)

        assert result.code == INVALID_STATE
        assert get_booking_by_id(booking.id).quotes == []

    def test_missing_booking(self, quote_payload):
        assert send_quote("missing", quote_payload).code == NOT_FOUND


class TestStatusChanges:
    """decline, confirm, complete, cancel"""

    @pytest.fixture
    def booking(self, booking_payload):
        return create_booking_request(booking_payload).data

    def test_decline_with_reason(self, booking):
        assert decline_booking(booking.id, {"reason": "Already booked that night"}).success

        declined = get_booking_by_id(booking.id)
        assert declined.status == BookingStatus.DECLINED
        assert declined.decline_reason == "Already booked that night"
        assert declined.events[-1].event_type == "BOOKING_DECLINED"

    def test_decline_twice(self, booking):
        decline_booking(booking.id)

        assert decline_booking(booking.id).code == INVALID_STATE

    def test_confirm_requires_deposit(self, booking):
        result = confirm_booking(booking.id)

        assert result.code == INVALID_STATE
        assert get_booking_by_id(booking.id).status == BookingStatus.REQUESTED

    def test_complete_requires_confirmation(self, booking):
        assert complete_booking(booking.id).code == INVALID_STATE

    def test_cancel(self, booking):
        assert cancel_booking(booking.id, {"reason": "Event was postponed"}).success

        cancelled = get_booking_by_id(booking.id)
        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancellation_reason == "Event was postponed"

    def test_cancel_reason_required(self, booking):
        assert cancel_booking(booking.id, {"reason": "No"}).code == VALIDATION_ERROR

    def test_stats(self, creator, booking, booking_payload, quote_payload):
        other = create_booking_request(booking_payload).data
        send_quote(other.id, quote_payload)

        stats = get_booking_stats_by_creator_id(creator.id)

        assert (stats.total, stats.requested, stats.quoted) == (2, 1, 1)
        assert get_pending_bookings_count(creator.id) == 1
