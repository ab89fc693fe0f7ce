"""
Booking deposit payments and the payment-provider webhook

With settings.simulate_payments the deposit settles as soon as it is
created. Otherwise the booking waits in DEPOSIT_PENDING until the
provider calls the webhook.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..database import get_session, BookingRepository
from ..database.models import (
    ActorType,
    BookingPaymentType,
    BookingStatus,
    PaymentStatus,
    QuoteStatus,
)
from ..notifier import get_notifier
from ..utils import generate_payment_receipt_id, generate_psp_ref, utcnow
from ..web.page_cache import revalidate_path
from .bookings import can_transition, move_booking
from .result import ActionError, ActionResult, INVALID_STATE, NOT_FOUND, VALIDATION_ERROR

logger = logging.getLogger(__name__)

WEBHOOK_STATUSES = ("success", "failed")


def _revalidate(booking_id: str) -> None:
    revalidate_path(f"/booking/{booking_id}")
    revalidate_path(f"/app/bookings/{booking_id}")
    revalidate_path("/app/bookings")


def _settle_deposit(session, payment, booking) -> bool:
    """
    Payment PAID, quote ACCEPTED, booking DEPOSIT_PAID, all in one transaction.

    A payment whose quote is no longer ACTIVE is marked FAILED instead and
    False is returned.
    """
    quote = BookingRepository.get_quote(session, payment.quote_id)
    if quote is None or quote.status != QuoteStatus.ACTIVE:
        BookingRepository.set_payment_status(session, payment.id, PaymentStatus.FAILED)
        BookingRepository.log_event(
            session, booking.id, "PAYMENT_REJECTED", ActorType.SYSTEM,
            {"payment_id": payment.id, "quote_id": payment.quote_id},
        )
        return False

    BookingRepository.set_payment_status(session, payment.id, PaymentStatus.PAID)
    BookingRepository.set_quote_status(session, payment.quote_id, QuoteStatus.ACCEPTED)
    move_booking(
        session, booking, BookingStatus.DEPOSIT_PAID, "DEPOSIT_PAID", ActorType.SYSTEM,
        {"payment_id": payment.id, "quote_id": payment.quote_id},
    )
    return True


def _notify_deposit(booking_id: str, payment_id: str) -> None:
    try:
        with get_session() as session:
            booking = BookingRepository.get_by_id(session, booking_id)
    except SQLAlchemyError:
        logger.exception("Could not load booking %s for the deposit alert", booking_id)
        return
    payment = next((p for p in booking.payments if p.id == payment_id), None) if booking else None
    if payment is not None:
        get_notifier().deposit_paid(booking.creator, booking, payment)


def initiate_booking_payment(booking_id: str, quote_id: str) -> ActionResult:
    """
    Start the deposit for an ACTIVE, unexpired quote.

    An already PAID deposit for the same quote is returned as is, so the
    booker can reopen their receipt.
    """
    settled = False
    try:
        with get_session() as session:
            quote = BookingRepository.get_quote(session, quote_id)
            if quote is None or quote.booking_id != booking_id:
                raise ActionError("Quote not found", NOT_FOUND)

            existing = BookingRepository.get_deposit(session, booking_id, quote_id)
            if existing is not None and existing.status == PaymentStatus.PAID:
                return ActionResult.ok(data=existing)

            if quote.status != QuoteStatus.ACTIVE:
                raise ActionError("Quote is no longer active", INVALID_STATE)
            if quote.expires_at < utcnow():
                raise ActionError("Quote has expired", INVALID_STATE)

            booking = BookingRepository.get_by_id(session, booking_id)
            if not can_transition(booking.status, BookingStatus.DEPOSIT_PAID):
                raise ActionError("Booking is not awaiting a deposit", INVALID_STATE)

            payment = BookingRepository.create_payment(
                session,
                booking_id=booking_id,
                quote_id=quote_id,
                amount=quote.deposit_amount,
                currency=quote.currency,
                type=BookingPaymentType.DEPOSIT,
                status=PaymentStatus.PENDING,
                receipt_id=generate_payment_receipt_id(),
                psp_ref=generate_psp_ref(),
            )

            if settings.simulate_payments:
                settled = _settle_deposit(session, payment, booking)
            elif booking.status != BookingStatus.DEPOSIT_PENDING:
                move_booking(
                    session, booking, BookingStatus.DEPOSIT_PENDING, "PAYMENT_INITIATED", ActorType.BOOKER,
                    {"payment_id": payment.id, "psp_ref": payment.psp_ref},
                )
            session.expire_all()
            payment = BookingRepository.get_payment_by_receipt_id(session, payment.receipt_id)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error creating deposit for booking %s", booking_id)
        return ActionResult.fail("Failed to create payment")

    logger.info("Deposit %s for booking %s (%s)", payment.receipt_id, booking_id, payment.status.value)
    if settled:
        _notify_deposit(booking_id, payment.id)
    _revalidate(booking_id)
    return ActionResult.ok(data=payment)


def handle_payment_webhook(psp_ref: str, status: str) -> ActionResult:
    """
    Provider callback for a deposit.

    "success" settles the deposit (a repeat delivery is a no-op);
    "failed" marks the payment FAILED and returns a pending booking to
    QUOTED so the booker can try again. A FAILED payment is final: later
    callbacks for it change nothing.
    """
    if status not in WEBHOOK_STATUSES:
        return ActionResult.fail(f"Unknown payment status: {status}", VALIDATION_ERROR)

    settled = False
    try:
        with get_session() as session:
            payment = BookingRepository.get_payment_by_psp_ref(session, psp_ref)
            if payment is None:
                raise ActionError("Payment not found", NOT_FOUND)
            if payment.status == PaymentStatus.PAID:
                return ActionResult.ok(data=payment)
            if payment.status == PaymentStatus.FAILED:
                if status == "success":
                    logger.warning("Success callback for voided payment %s ignored", psp_ref)
                return ActionResult.ok(data=payment)

            booking = BookingRepository.get_by_id(session, payment.booking_id)
            if status == "success":
                settled = _settle_deposit(session, payment, booking)
            else:
                BookingRepository.set_payment_status(session, payment.id, PaymentStatus.FAILED)
                BookingRepository.log_event(
                    session, booking.id, "PAYMENT_FAILED", ActorType.SYSTEM,
                    {"payment_id": payment.id, "psp_ref": psp_ref},
                )
                if booking.status == BookingStatus.DEPOSIT_PENDING:
                    move_booking(
                        session, booking, BookingStatus.QUOTED, "DEPOSIT_RESET", ActorType.SYSTEM,
                        {"payment_id": payment.id},
                    )
            booking_id, payment_id = booking.id, payment.id
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error handling payment webhook for %s", psp_ref)
        return ActionResult.fail("Failed to process payment")

    _revalidate(booking_id)
    if status == "success" and not settled:
        logger.warning("Payment %s rejected: its quote is no longer active", psp_ref)
        return ActionResult.fail("Quote is no longer active", INVALID_STATE)

    logger.info("Payment webhook %s: %s", psp_ref, status)
    if settled:
        _notify_deposit(booking_id, payment_id)
    return ActionResult.ok()
