"""Booking lookups and inbox stats"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func

from ..database import get_session, BookingRepository
from ..database.models import Booking, BookingPayment, BookingStatus
from .base import safe_query


@dataclass
class BookingStats:
    total: int = 0
    requested: int = 0
    quoted: int = 0
    deposit_paid: int = 0
    confirmed: int = 0
    completed: int = 0
    declined: int = 0


@safe_query(None)
def get_booking_by_id(booking_id: str) -> Optional[Booking]:
    """Booking with creator, quotes, payments and event log loaded"""
    with get_session() as session:
        return BookingRepository.get_by_id(session, booking_id)


@safe_query(None)
def get_booking_by_reference_code(code: str) -> Optional[Booking]:
    with get_session() as session:
        return BookingRepository.get_by_reference_code(session, code.strip().upper())


@safe_query(list)
def get_bookings_by_creator_id(creator_id: str, status: Optional[BookingStatus] = None) -> list[Booking]:
    with get_session() as session:
        return BookingRepository.get_by_creator(session, creator_id, status)


@safe_query(list)
def get_all_bookings() -> list[Booking]:
    with get_session() as session:
        return BookingRepository.get_all(session)


@safe_query(0)
def get_pending_bookings_count(creator_id: str) -> int:
    with get_session() as session:
        return (
            session.query(func.count(Booking.id))
            .filter(Booking.creator_id == creator_id, Booking.status == BookingStatus.REQUESTED)
            .scalar()
        ) or 0


@safe_query(BookingStats)
def get_booking_stats_by_creator_id(creator_id: str) -> BookingStats:
    with get_session() as session:
        rows = (
            session.query(Booking.status, func.count(Booking.id))
            .filter(Booking.creator_id == creator_id)
            .group_by(Booking.status)
            .all()
        )
    counts = {status: count for status, count in rows}
    return BookingStats(
        total=sum(counts.values()),
        requested=counts.get(BookingStatus.REQUESTED, 0),
        quoted=counts.get(BookingStatus.QUOTED, 0),
        deposit_paid=counts.get(BookingStatus.DEPOSIT_PAID, 0),
        confirmed=counts.get(BookingStatus.CONFIRMED, 0),
        completed=counts.get(BookingStatus.COMPLETED, 0),
        declined=counts.get(BookingStatus.DECLINED, 0),
    )


@safe_query(None)
def get_booking_payment_by_receipt_id(receipt_id: str) -> Optional[BookingPayment]:
    """Payment with its booking, creator and quote loaded"""
    with get_session() as session:
        return BookingRepository.get_payment_by_receipt_id(session, receipt_id)
