"""Creator dashboard aggregate and recent-activity feed"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..database import get_session, BookingRepository, PurchaseRepository, VipRepository
from ..database.models import Booking, BookingStatus, Creator, Drop, PaymentStatus, Purchase
from .base import safe_query
from .bookings import BookingStats, get_booking_stats_by_creator_id, get_bookings_by_creator_id
from .creators import get_creator_by_id
from .drops import DropStats, get_drop_stats_by_creator_id, get_drops_by_creator_id
from .purchases import EarningsStats, get_earnings_stats_by_creator_id, get_recent_purchases_by_creator_id
from .vip import VipStats, get_vip_stats_by_creator_id


@dataclass
class DashboardData:
    creator: Creator
    vip_stats: VipStats
    earnings_stats: EarningsStats
    drop_stats: DropStats
    booking_stats: BookingStats
    recent_purchases: list[Purchase] = field(default_factory=list)
    pending_bookings: list[Booking] = field(default_factory=list)
    recent_drops: list[Drop] = field(default_factory=list)


@dataclass
class ActivityItem:
    id: str
    type: str  # vip, purchase, booking
    name: str
    action: str
    source: str
    time: datetime
    amount: Optional[int] = None


def get_dashboard_data(creator_id: str) -> Optional[DashboardData]:
    creator = get_creator_by_id(creator_id)
    if creator is None:
        return None

    return DashboardData(
        creator=creator,
        vip_stats=get_vip_stats_by_creator_id(creator_id),
        earnings_stats=get_earnings_stats_by_creator_id(creator_id),
        drop_stats=get_drop_stats_by_creator_id(creator_id),
        booking_stats=get_booking_stats_by_creator_id(creator_id),
        recent_purchases=get_recent_purchases_by_creator_id(creator_id, 5),
        pending_bookings=get_bookings_by_creator_id(creator_id, BookingStatus.REQUESTED),
        recent_drops=get_drops_by_creator_id(creator_id)[:5],
    )


def _fan_label(name: Optional[str], phone: str) -> str:
    return name or phone[-4:]


@safe_query(list)
def get_recent_activity(creator_id: str, limit: int = 10) -> list[ActivityItem]:
    """VIP joins, paid purchases and booking requests merged newest first"""
    with get_session() as session:
        vips = VipRepository.get_active_by_creator(session, creator_id, limit=limit)
        purchases = PurchaseRepository.get_by_creator(
            session, creator_id, status=PaymentStatus.PAID, limit=limit
        )
        bookings = BookingRepository.get_by_creator(session, creator_id, limit=limit)

    activities = [
        ActivityItem(
            id=f"vip-{vip.id}",
            type="vip",
            name=_fan_label(vip.fan_name, vip.fan_phone),
            action="joined as VIP",
            source=vip.source.value.replace("_", " ").lower(),
            time=vip.joined_at,
        )
        for vip in vips
    ]
    activities.extend(
        ActivityItem(
            id=f"purchase-{purchase.id}",
            type="purchase",
            name=_fan_label(purchase.fan_name, purchase.fan_phone),
            action="purchased",
            source=purchase.drop.title if purchase.drop else "Drop",
            time=purchase.paid_at or purchase.created_at,
            amount=purchase.amount,
        )
        for purchase in purchases
    )
    activities.extend(
        ActivityItem(
            id=f"booking-{booking.id}",
            type="booking",
            name=booking.booker_name,
            action="requested booking",
            source=f"{booking.type.value.replace('_', ' ')} · {booking.start_at:%b} {booking.start_at.day}",
            time=booking.created_at,
        )
        for booking in bookings
    )

    activities.sort(key=lambda item: item.time, reverse=True)
    return activities[:limit]
