"""
Database module
"""

from .models import (
    Base,
    Creator,
    Drop,
    VipSubscription,
    Purchase,
    Booking,
    BookingQuote,
    BookingPayment,
    BookingEvent,
    Broadcast,
)
from .repository import (
    init_db,
    is_initialized,
    dispose_db,
    get_session,
    CreatorRepository,
    DropRepository,
    VipRepository,
    PurchaseRepository,
    BookingRepository,
    BroadcastRepository,
)

__all__ = [
    "Base",
    "Creator",
    "Drop",
    "VipSubscription",
    "Purchase",
    "Booking",
    "BookingQuote",
    "BookingPayment",
    "BookingEvent",
    "Broadcast",
    "init_db",
    "is_initialized",
    "dispose_db",
    "get_session",
    "CreatorRepository",
    "DropRepository",
    "VipRepository",
    "PurchaseRepository",
    "BookingRepository",
    "BroadcastRepository",
]
