"""
Drop purchases
"""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..database import get_session, DropRepository, PurchaseRepository, VipRepository
from ..database.models import DropStatus, PaymentStatus
from ..queries.purchases import get_purchase_by_receipt_id
from ..utils import generate_order_receipt_id, generate_psp_ref, utcnow
from ..validation import PurchaseRequest
from ..web.page_cache import revalidate_path
from .result import ActionError, ActionResult, CONFLICT, INVALID_STATE, NOT_FOUND

logger = logging.getLogger(__name__)

__all__ = ["initiate_purchase", "get_purchase_by_receipt_id"]


def initiate_purchase(
    drop_id: str,
    fan_phone: str,
    fan_name: Optional[str] = None,
    quantity: int = 1,
) -> ActionResult:
    """
    Buy `quantity` units of a LIVE drop.

    Slots are taken with a single conditional decrement so concurrent
    buyers cannot oversell. With simulated payments the purchase is
    settled immediately; otherwise it stays PENDING until the provider
    confirms it.
    """
    try:
        data = PurchaseRequest.model_validate(
            {"fan_phone": fan_phone, "fan_name": fan_name, "quantity": quantity}
        )
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    try:
        with get_session() as session:
            drop = DropRepository.get_by_id(session, drop_id)
            if drop is None:
                raise ActionError("Drop not found", NOT_FOUND)
            if drop.status != DropStatus.LIVE:
                raise ActionError("This drop is not available for purchase", INVALID_STATE)
            if drop.vip_required and VipRepository.get_active_with_creator(
                session, drop.creator_id, data.fan_phone
            ) is None:
                raise ActionError("This drop is for VIP members only", INVALID_STATE)

            if drop.total_slots is not None and drop.slots_remaining is not None:
                if not DropRepository.reserve_slots(session, drop.id, data.quantity):
                    session.refresh(drop, ["slots_remaining"])
                    raise ActionError(f"Only {drop.slots_remaining} slots remaining", CONFLICT)

            purchase = PurchaseRepository.create(
                session,
                drop_id=drop.id,
                fan_phone=data.fan_phone,
                fan_name=data.fan_name,
                quantity=data.quantity,
                amount=(drop.price or 0) * data.quantity,
                currency=drop.currency,
                receipt_id=generate_order_receipt_id(),
                psp_ref=generate_psp_ref(),
                payment_status=PaymentStatus.PENDING,
            )

            if settings.simulate_payments:
                purchase.payment_status = PaymentStatus.PAID
                purchase.paid_at = utcnow()
                session.flush()
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error creating purchase for drop %s", drop_id)
        return ActionResult.fail("Failed to create purchase")

    logger.info("Purchase %s for drop %s (%s)", purchase.receipt_id, drop.slug, purchase.payment_status.value)
    revalidate_path(f"/d/{drop.slug}")
    revalidate_path(f"/c/{drop.creator.slug}")
    return ActionResult.ok(data=purchase)
