"""
VIP list actions

subscribe_to_vip is race-free: an INSERT ... ON CONFLICT DO NOTHING
creates the row if the pair is new, otherwise a conditional UPDATE
flips UNSUBSCRIBED back to ACTIVE. If neither statement writes, the
fan was already subscribed.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..database import get_session, CreatorRepository, VipRepository
from ..database.models import VipChannel, VipSource, VipStatus
from ..queries.vip import get_vip_subscription
from ..utils import generate_confirmation_id, utcnow
from ..validation import VipJoin
from .result import ActionResult, NOT_FOUND

logger = logging.getLogger(__name__)

__all__ = ["subscribe_to_vip", "join_vip", "unsubscribe_from_vip", "get_vip_subscription"]


def subscribe_to_vip(
    creator_id: str,
    fan_phone: str,
    channel: VipChannel,
    source: VipSource,
    fan_name: Optional[str] = None,
    source_ref: Optional[str] = None,
) -> ActionResult:
    """
    Add a fan to a creator's VIP list.

    Returns success with no flags for a new row, `resubscribed=True`
    when an UNSUBSCRIBED row was reactivated and `already_subscribed=True`
    when the row was already ACTIVE. Every success carries a VIP-XXXXXX
    confirmation id.
    """
    confirmation_id = generate_confirmation_id()
    try:
        with get_session() as session:
            created = VipRepository.insert_if_absent(session, {
                "creator_id": creator_id,
                "fan_phone": fan_phone,
                "fan_name": fan_name,
                "channel": channel,
                "source": source,
                "source_ref": source_ref,
                "status": VipStatus.ACTIVE,
                "joined_at": utcnow(),
            })
            resubscribed = False
            if not created:
                resubscribed = VipRepository.reactivate(
                    session, creator_id, fan_phone, {"channel": channel}
                )
            subscription = VipRepository.get(session, creator_id, fan_phone)
    except SQLAlchemyError:
        logger.exception("VIP subscribe failed for creator %s", creator_id)
        return ActionResult.fail("Failed to join the VIP list")

    if created:
        logger.info("New VIP for creator %s via %s", creator_id, source.value)
    return ActionResult.ok(
        data=subscription,
        confirmation_id=confirmation_id,
        already_subscribed=not created and not resubscribed,
        resubscribed=resubscribed,
    )


def join_vip(payload: dict) -> ActionResult:
    """Validated VIP join for forms and the JSON API; the creator must be ACTIVE"""
    try:
        data = VipJoin.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    creator_id = str(data.creator_id)
    try:
        with get_session() as session:
            creator = CreatorRepository.get_active_by_id(session, creator_id)
    except SQLAlchemyError:
        logger.exception("Creator lookup failed for %s", creator_id)
        return ActionResult.fail("Failed to join the VIP list")
    if creator is None:
        return ActionResult.fail("Creator not found", NOT_FOUND)

    return subscribe_to_vip(
        creator_id,
        data.fan_phone,
        channel=data.channel,
        source=data.source,
        fan_name=data.fan_name,
        source_ref=data.source_ref,
    )


def unsubscribe_from_vip(creator_id: str, fan_phone: str) -> ActionResult:
    """Mark the pair UNSUBSCRIBED; a missing pair is not an error"""
    try:
        with get_session() as session:
            changed = VipRepository.set_unsubscribed(session, creator_id, fan_phone)
    except SQLAlchemyError:
        logger.exception("VIP unsubscribe failed for creator %s", creator_id)
        return ActionResult.fail("Failed to unsubscribe")
    if changed:
        logger.info("VIP left creator %s", creator_id)
    return ActionResult.ok()
