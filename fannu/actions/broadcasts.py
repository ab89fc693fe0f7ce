"""
Broadcast actions

Lifecycle: DRAFT -> SCHEDULED -> SENDING -> SENT. A SCHEDULED broadcast
can be CANCELLED; anything not yet SENT can be deleted. Each status
change carries its precondition in the UPDATE's WHERE clause.
Delivery to messaging channels is simulated: every recipient of the
segment counts as delivered.
"""

import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..database import get_session, BroadcastRepository, DropRepository
from ..database.models import Broadcast, BroadcastStatus
from ..queries.broadcasts import count_segment_recipients
from ..utils import utcnow
from ..validation import BroadcastCompose
from ..web.page_cache import revalidate_path
from .result import ActionError, ActionResult, INVALID_STATE, NOT_FOUND

logger = logging.getLogger(__name__)


def _compose(creator_id: str, payload: dict, session) -> dict:
    data = BroadcastCompose.model_validate(payload)
    if data.drop_id:
        drop = DropRepository.get_by_id(session, data.drop_id)
        if drop is None or drop.creator_id != creator_id:
            raise ActionError("Drop not found", NOT_FOUND)
    return {
        "creator_id": creator_id,
        "message_text": data.message_text,
        "segment": data.segment,
        "channels": [channel.value for channel in data.channels],
        "media_url": str(data.media_url) if data.media_url else None,
        "drop_id": data.drop_id,
        "scheduled_at": data.scheduled_at,
    }


def _send(session, broadcast: Broadcast) -> int:
    """Count the segment and mark the broadcast SENT; returns the recipient count"""
    recipients = count_segment_recipients(session, broadcast.creator_id, broadcast.segment)
    updated = BroadcastRepository.transition(
        session,
        broadcast.id,
        [BroadcastStatus.SENDING, BroadcastStatus.SCHEDULED],
        {
            "status": BroadcastStatus.SENT,
            "sent_at": utcnow(),
            "recipients_count": recipients,
            "delivered_count": recipients,
            "failed_count": 0,
        },
    )
    if not updated:
        raise ActionError("Broadcast is not awaiting delivery", INVALID_STATE)
    logger.info("Broadcast %s sent to %d recipient(s)", broadcast.id, recipients)
    return recipients


def create_broadcast(creator_id: str, payload: dict) -> ActionResult:
    """SCHEDULED when scheduled_at is given, otherwise sent right away"""
    try:
        with get_session() as session:
            values = _compose(creator_id, payload, session)
            status = BroadcastStatus.SCHEDULED if values["scheduled_at"] else BroadcastStatus.SENDING
            broadcast = BroadcastRepository.create(session, status=status, **values)
            if status == BroadcastStatus.SENDING:
                _send(session, broadcast)
            session.expire_all()
            broadcast = BroadcastRepository.get_by_id(session, broadcast.id)
    except ValidationError as exc:
        return ActionResult.invalid(exc)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error creating broadcast for creator %s", creator_id)
        return ActionResult.fail("Failed to create broadcast")

    revalidate_path("/app/broadcasts")
    return ActionResult.ok(data=broadcast)


def save_broadcast_draft(creator_id: str, payload: dict) -> ActionResult:
    try:
        with get_session() as session:
            values = _compose(creator_id, payload, session)
            values["scheduled_at"] = None
            broadcast = BroadcastRepository.create(session, status=BroadcastStatus.DRAFT, **values)
    except ValidationError as exc:
        return ActionResult.invalid(exc)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error saving broadcast draft for creator %s", creator_id)
        return ActionResult.fail("Failed to save draft")

    revalidate_path("/app/broadcasts")
    return ActionResult.ok(data=broadcast)


def cancel_scheduled_broadcast(broadcast_id: str) -> ActionResult:
    """SCHEDULED -> CANCELLED; any other state is left untouched and reported"""
    try:
        with get_session() as session:
            updated = BroadcastRepository.transition(
                session,
                broadcast_id,
                [BroadcastStatus.SCHEDULED],
                {"status": BroadcastStatus.CANCELLED, "scheduled_at": None},
            )
    except SQLAlchemyError:
        logger.exception("Error cancelling broadcast %s", broadcast_id)
        return ActionResult.fail("Failed to cancel broadcast")

    if not updated:
        return ActionResult.fail("Only scheduled broadcasts can be cancelled", INVALID_STATE)
    revalidate_path("/app/broadcasts")
    return ActionResult.ok()


def delete_broadcast(broadcast_id: str) -> ActionResult:
    """Delete a broadcast unless it has been SENT"""
    try:
        with get_session() as session:
            if BroadcastRepository.get_by_id(session, broadcast_id) is None:
                raise ActionError("Broadcast not found", NOT_FOUND)
            if not BroadcastRepository.delete_unsent(session, broadcast_id):
                raise ActionError("Sent broadcasts cannot be deleted", INVALID_STATE)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error deleting broadcast %s", broadcast_id)
        return ActionResult.fail("Failed to delete broadcast")

    revalidate_path("/app/broadcasts")
    return ActionResult.ok()


def dispatch_broadcast(broadcast_id: str) -> ActionResult:
    """Deliver a SENDING or SCHEDULED broadcast now"""
    try:
        with get_session() as session:
            broadcast = BroadcastRepository.get_by_id(session, broadcast_id)
            if broadcast is None:
                raise ActionError("Broadcast not found", NOT_FOUND)
            recipients = _send(session, broadcast)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error dispatching broadcast %s", broadcast_id)
        return ActionResult.fail("Failed to send broadcast")

    revalidate_path("/app/broadcasts")
    return ActionResult.ok(data=recipients)


def dispatch_due_broadcasts(now: Optional[datetime] = None) -> int:
    """Send every SCHEDULED broadcast whose time has come; returns how many were sent"""
    now = now or utcnow()
    try:
        with get_session() as session:
            due_ids = [b.id for b in BroadcastRepository.get_due_scheduled(session, now)]
    except SQLAlchemyError:
        logger.exception("Failed to load due broadcasts")
        return 0

    sent = 0
    for broadcast_id in due_ids:
        result = dispatch_broadcast(broadcast_id)
        if result.success:
            sent += 1
        elif result.code != INVALID_STATE:
            _mark_failed(broadcast_id)
    if due_ids:
        logger.info("Dispatched %d of %d due broadcast(s)", sent, len(due_ids))
    return sent


def _mark_failed(broadcast_id: str) -> None:
    try:
        with get_session() as session:
            BroadcastRepository.transition(
                session, broadcast_id, [BroadcastStatus.SCHEDULED], {"status": BroadcastStatus.FAILED}
            )
    except SQLAlchemyError:
        logger.exception("Could not mark broadcast %s as failed", broadcast_id)
