"""
Booking actions: request, quote, decline, confirm, complete, cancel

Every status change is checked against BOOKING_TRANSITIONS and written
with the current status in the WHERE clause, then recorded in the
booking event log.
"""

import logging
from datetime import timedelta
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..database import get_session, BookingRepository, CreatorRepository
from ..database.models import ActorType, BookingStatus, QuoteStatus
from ..notifier import get_notifier
from ..utils import generate_reference_code, utcnow
from ..validation import BookingRequest, CancelBooking, DeclineBooking, Quote
from ..web.page_cache import revalidate_path
from .result import ActionError, ActionResult, CONFLICT, INVALID_STATE, NOT_FOUND

logger = logging.getLogger(__name__)

REFERENCE_CODE_ATTEMPTS = 5

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.REQUESTED: {BookingStatus.QUOTED, BookingStatus.DECLINED, BookingStatus.CANCELLED},
    BookingStatus.QUOTED: {
        BookingStatus.QUOTED,
        BookingStatus.DEPOSIT_PENDING,
        BookingStatus.DEPOSIT_PAID,
        BookingStatus.DECLINED,
        BookingStatus.CANCELLED,
    },
    BookingStatus.DEPOSIT_PENDING: {BookingStatus.DEPOSIT_PAID, BookingStatus.QUOTED, BookingStatus.CANCELLED},
    BookingStatus.DEPOSIT_PAID: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.DISPUTED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.DISPUTED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.DECLINED: set(),
    BookingStatus.DISPUTED: set(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def compute_deposit(total_amount: int, deposit_percent: int) -> int:
    """total * percent / 100, rounded half up"""
    return (total_amount * deposit_percent + 50) // 100


def _revalidate_booking(booking_id: str) -> None:
    revalidate_path("/app/bookings")
    revalidate_path(f"/app/bookings/{booking_id}")
    revalidate_path(f"/booking/{booking_id}")


def move_booking(
    session,
    booking,
    target: BookingStatus,
    event_type: str,
    actor_type: ActorType,
    metadata: Optional[dict] = None,
    actor_id: Optional[str] = None,
    **extra,
) -> None:
    """Guarded status change plus its event log entry, inside the caller's session"""
    if not can_transition(booking.status, target):
        raise ActionError(
            f"Booking cannot move from {booking.status.value} to {target.value}", INVALID_STATE
        )
    if not BookingRepository.set_status(session, booking.id, target, expected=[booking.status], **extra):
        raise ActionError("Booking was changed by someone else; reload and try again", CONFLICT)
    BookingRepository.log_event(session, booking.id, event_type, actor_type, metadata, actor_id)


def create_booking_request(payload: dict) -> ActionResult:
    """Validate a public booking request and open it as REQUESTED"""
    try:
        data = BookingRequest.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    try:
        with get_session() as session:
            creator = CreatorRepository.get_active_by_slug(session, data.creator_slug)
            if creator is None:
                raise ActionError("Creator not found", NOT_FOUND)
            if not (creator.booking_enabled and creator.booking_approved):
                raise ActionError("Creator is not accepting bookings", INVALID_STATE)

            reference_code = generate_reference_code()
            for _ in range(REFERENCE_CODE_ATTEMPTS):
                if not BookingRepository.reference_code_exists(session, reference_code):
                    break
                reference_code = generate_reference_code()

            booking = BookingRepository.create(
                session,
                creator_id=creator.id,
                booker_name=data.booker_name,
                booker_phone=data.booker_phone,
                booker_email=data.booker_email,
                type=data.type,
                start_at=data.start_at,
                end_at=data.end_at,
                location_city=data.location_city,
                location_venue=data.location_venue,
                budget_min=data.budget_min,
                budget_max=data.budget_max,
                notes=data.notes,
                attachments=[str(url) for url in data.attachments],
                status=BookingStatus.REQUESTED,
                reference_code=reference_code,
            )
            BookingRepository.log_event(
                session, booking.id, "BOOKING_REQUESTED", ActorType.BOOKER,
                {"booker_name": data.booker_name},
            )
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error creating booking for %s", data.creator_slug)
        return ActionResult.fail("Failed to create booking")

    logger.info("Booking %s requested for %s", booking.reference_code, creator.slug)
    get_notifier().booking_requested(creator, booking)
    revalidate_path("/app/bookings")
    return ActionResult.ok(data=booking)


def send_quote(booking_id: str, payload: dict) -> ActionResult:
    """New ACTIVE quote; earlier ACTIVE quotes are superseded and the booking becomes QUOTED"""
    try:
        data = Quote.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    try:
        with get_session() as session:
            booking = BookingRepository.get_by_id(session, booking_id)
            if booking is None:
                raise ActionError("Booking not found", NOT_FOUND)

            voided = BookingRepository.fail_pending_payments(session, booking_id)
            if voided:
                BookingRepository.log_event(
                    session, booking_id, "PAYMENT_VOIDED", ActorType.SYSTEM, {"count": voided},
                )
            BookingRepository.supersede_active_quotes(session, booking_id)
            quote = BookingRepository.create_quote(
                session,
                booking_id=booking_id,
                total_amount=data.total_amount,
                deposit_percent=data.deposit_percent,
                deposit_amount=compute_deposit(data.total_amount, data.deposit_percent),
                currency=settings.default_currency,
                deposit_refundable=data.deposit_refundable,
                expires_at=utcnow() + timedelta(hours=data.expires_in_hours),
                terms_text=data.terms_text,
                status=QuoteStatus.ACTIVE,
            )
            move_booking(
                session, booking, BookingStatus.QUOTED, "QUOTE_SENT", ActorType.CREATOR,
                {"quote_id": quote.id, "amount": data.total_amount},
            )
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error sending quote for booking %s", booking_id)
        return ActionResult.fail("Failed to create quote")

    _revalidate_booking(booking_id)
    return ActionResult.ok(data=quote)


def _change_status(
    booking_id: str,
    target: BookingStatus,
    event_type: str,
    actor_type: ActorType,
    metadata: Optional[dict] = None,
    **extra,
) -> ActionResult:
    try:
        with get_session() as session:
            booking = BookingRepository.get_by_id(session, booking_id)
            if booking is None:
                raise ActionError("Booking not found", NOT_FOUND)
            move_booking(session, booking, target, event_type, actor_type, metadata, **extra)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error moving booking %s to %s", booking_id, target.value)
        return ActionResult.fail("Failed to update booking")

    logger.info("Booking %s -> %s", booking_id, target.value)
    _revalidate_booking(booking_id)
    return ActionResult.ok()


def decline_booking(booking_id: str, payload: Optional[dict] = None) -> ActionResult:
    try:
        data = DeclineBooking.model_validate(payload or {})
    except ValidationError as exc:
        return ActionResult.invalid(exc)
    return _change_status(
        booking_id, BookingStatus.DECLINED, "BOOKING_DECLINED", ActorType.CREATOR,
        {"reason": data.reason}, decline_reason=data.reason,
    )


def confirm_booking(booking_id: str) -> ActionResult:
    return _change_status(booking_id, BookingStatus.CONFIRMED, "BOOKING_CONFIRMED", ActorType.CREATOR)


def complete_booking(booking_id: str) -> ActionResult:
    return _change_status(booking_id, BookingStatus.COMPLETED, "BOOKING_COMPLETED", ActorType.CREATOR)


def cancel_booking(booking_id: str, payload: dict, actor_type: ActorType = ActorType.CREATOR) -> ActionResult:
    try:
        data = CancelBooking.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)
    return _change_status(
        booking_id, BookingStatus.CANCELLED, "BOOKING_CANCELLED", actor_type,
        {"reason": data.reason}, cancellation_reason=data.reason,
    )
