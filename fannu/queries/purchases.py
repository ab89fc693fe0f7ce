"""Purchase lookups and drop-sales stats"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from ..database import get_session, PurchaseRepository
from ..database.models import Purchase, PaymentStatus
from ..utils import utcnow
from .base import safe_query


@dataclass
class EarningsStats:
    total_revenue: int = 0
    last_30_days_revenue: int = 0
    total_sales: int = 0
    last_30_days_sales: int = 0
    average_order_value: float = 0


@safe_query(None)
def get_purchase_by_receipt_id(receipt_id: str) -> Optional[Purchase]:
    """Purchase with its drop and the drop's creator loaded"""
    with get_session() as session:
        return PurchaseRepository.get_by_receipt_id(session, receipt_id)


@safe_query(list)
def get_purchases_by_drop_id(drop_id: str) -> list[Purchase]:
    with get_session() as session:
        return PurchaseRepository.get_by_drop(session, drop_id)


@safe_query(list)
def get_recent_purchases_by_creator_id(creator_id: str, limit: int = 10) -> list[Purchase]:
    """Latest PAID purchases across the creator's drops"""
    with get_session() as session:
        return PurchaseRepository.get_by_creator(session, creator_id, status=PaymentStatus.PAID, limit=limit)


@safe_query(EarningsStats)
def get_earnings_stats_by_creator_id(creator_id: str) -> EarningsStats:
    with get_session() as session:
        purchases = PurchaseRepository.get_by_creator(session, creator_id, status=PaymentStatus.PAID)

    if not purchases:
        return EarningsStats()

    cutoff = utcnow() - timedelta(days=30)
    recent = [p for p in purchases if p.paid_at and p.paid_at >= cutoff]

    total_revenue = sum(p.amount for p in purchases)
    return EarningsStats(
        total_revenue=total_revenue,
        last_30_days_revenue=sum(p.amount for p in recent),
        total_sales=sum(p.quantity for p in purchases),
        last_30_days_sales=sum(p.quantity for p in recent),
        average_order_value=total_revenue / len(purchases),
    )
