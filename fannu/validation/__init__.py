"""
Validation module
"""

from .schemas import (
    FormModel,
    DropCreate,
    DropUpdate,
    DropPublish,
    VipJoin,
    PurchaseRequest,
    BookingRequest,
    Quote,
    DeclineBooking,
    CancelBooking,
    CreatorProfileUpdate,
    BookingSettingsUpdate,
    BroadcastCompose,
    field_errors,
)

__all__ = [
    "FormModel",
    "DropCreate",
    "DropUpdate",
    "DropPublish",
    "VipJoin",
    "PurchaseRequest",
    "BookingRequest",
    "Quote",
    "DeclineBooking",
    "CancelBooking",
    "CreatorProfileUpdate",
    "BookingSettingsUpdate",
    "BroadcastCompose",
    "field_errors",
]
