"""Creator earnings: balances, month-over-month change and recent transactions"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..database import get_session, BookingRepository, PurchaseRepository
from ..database.models import BookingType, PaymentStatus
from ..utils import utcnow
from .base import safe_query

BOOKING_TYPE_LABELS = {
    BookingType.LIVE_PERFORMANCE: "Concert",
    BookingType.MC_HOSTING: "MC / Hosting",
    BookingType.BRAND_CONTENT: "Brand Content",
    BookingType.CUSTOM: "Custom",
}

TRANSACTION_LIMIT = 10


@dataclass
class Transaction:
    id: str
    type: str  # booking_deposit, drop_sales, refund
    status: str  # completed, pending, processing
    amount: int
    description: str
    subtitle: str
    occurred_at: datetime


@dataclass
class EarningsData:
    available_balance: int = 0
    pending_balance: int = 0
    total_earned: int = 0
    this_month: int = 0
    this_month_change: int = 0
    transactions_this_month: int = 0


@dataclass
class EarningsSummary:
    data: EarningsData = field(default_factory=EarningsData)
    transactions: list[Transaction] = field(default_factory=list)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start of the current month and start of the previous one"""
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start_of_month.month == 1:
        start_of_last_month = start_of_month.replace(year=start_of_month.year - 1, month=12)
    else:
        start_of_last_month = start_of_month.replace(month=start_of_month.month - 1)
    return start_of_month, start_of_last_month


def month_change_percent(this_month: int, last_month: int) -> int:
    if last_month <= 0:
        return 0
    return round((this_month - last_month) / last_month * 100)


def _transaction_status(status: PaymentStatus) -> str:
    if status == PaymentStatus.PAID:
        return "completed"
    if status == PaymentStatus.PENDING:
        return "pending"
    return "processing"


@safe_query(EarningsSummary)
def get_creator_earnings(creator_id: str, now: Optional[datetime] = None) -> EarningsSummary:
    now = now or utcnow()
    with get_session() as session:
        booking_payments = BookingRepository.get_payments_by_creator(session, creator_id)
        purchases = PurchaseRepository.get_by_creator(session, creator_id)

    paid_payments = [p for p in booking_payments if p.status == PaymentStatus.PAID]
    paid_purchases = [p for p in purchases if p.payment_status == PaymentStatus.PAID]

    total_earned = sum(p.amount for p in paid_payments) + sum(p.amount for p in paid_purchases)
    pending_balance = (
        sum(p.amount for p in booking_payments if p.status == PaymentStatus.PENDING)
        + sum(p.amount for p in purchases if p.payment_status == PaymentStatus.PENDING)
    )

    start_of_month, start_of_last_month = month_bounds(now)
    paid = [(p.paid_at, p.amount) for p in paid_payments + paid_purchases if p.paid_at]
    this_month_items = [amount for paid_at, amount in paid if paid_at >= start_of_month]
    last_month_total = sum(
        amount for paid_at, amount in paid if start_of_last_month <= paid_at < start_of_month
    )
    this_month_total = sum(this_month_items)

    transactions = []
    for payment in booking_payments[:TRANSACTION_LIMIT]:
        refunded = payment.status == PaymentStatus.REFUNDED
        booking = payment.booking
        transactions.append(Transaction(
            id=payment.id,
            type="refund" if refunded else "booking_deposit",
            status=_transaction_status(payment.status),
            amount=-payment.amount if refunded else payment.amount,
            description="Refund" if refunded else "Booking deposit",
            subtitle=f"{booking.booker_name} · {BOOKING_TYPE_LABELS.get(booking.type, booking.type.value)}",
            occurred_at=payment.paid_at or payment.created_at,
        ))
    for purchase in paid_purchases[:TRANSACTION_LIMIT]:
        plural = "s" if purchase.quantity > 1 else ""
        transactions.append(Transaction(
            id=purchase.id,
            type="drop_sales",
            status="completed",
            amount=purchase.amount,
            description="Drop sales",
            subtitle=f"{purchase.drop.title} · {purchase.quantity} ticket{plural}",
            occurred_at=purchase.paid_at or purchase.created_at,
        ))
    transactions.sort(key=lambda t: t.occurred_at, reverse=True)

    return EarningsSummary(
        data=EarningsData(
            available_balance=total_earned,
            pending_balance=pending_balance,
            total_earned=total_earned,
            this_month=this_month_total,
            this_month_change=month_change_percent(this_month_total, last_month_total),
            transactions_this_month=len(this_month_items),
        ),
        transactions=transactions[:TRANSACTION_LIMIT],
    )
