"""
Mutations

Each action validates its input, writes inside one session and returns
an ActionResult. Public pages affected by a change are revalidated.
"""

from .result import (
    ActionError,
    ActionResult,
    VALIDATION_ERROR,
    NOT_FOUND,
    CONFLICT,
    INVALID_STATE,
    DATABASE_ERROR,
)
from .vip import subscribe_to_vip, join_vip, unsubscribe_from_vip
from .drops import create_drop, update_drop, publish_drop, end_drop, delete_drop, advance_drop_windows
from .purchases import initiate_purchase
from .broadcasts import (
    create_broadcast,
    save_broadcast_draft,
    cancel_scheduled_broadcast,
    delete_broadcast,
    dispatch_broadcast,
    dispatch_due_broadcasts,
)
from .bookings import (
    BOOKING_TRANSITIONS,
    can_transition,
    compute_deposit,
    create_booking_request,
    send_quote,
    decline_booking,
    confirm_booking,
    complete_booking,
    cancel_booking,
)
from .payments import initiate_booking_payment, handle_payment_webhook
from .creators import (
    update_creator_profile,
    update_creator_booking_settings,
    moderate_creator,
    set_booking_approval,
)
