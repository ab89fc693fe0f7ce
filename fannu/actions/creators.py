"""
Creator profile, booking settings and admin moderation
"""

import logging

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..database import get_session, CreatorRepository
from ..database.models import CreatorStatus
from ..validation import BookingSettingsUpdate, CreatorProfileUpdate
from ..web.page_cache import revalidate_path
from .result import ActionError, ActionResult, INVALID_STATE, NOT_FOUND

logger = logging.getLogger(__name__)

# Admin moderation moves
CREATOR_STATUS_MOVES = {
    "approve": (CreatorStatus.PENDING_APPROVAL, CreatorStatus.ACTIVE),
    "suspend": (CreatorStatus.ACTIVE, CreatorStatus.SUSPENDED),
    "reactivate": (CreatorStatus.SUSPENDED, CreatorStatus.ACTIVE),
}


def _update_creator(creator_id: str, values: dict, error: str) -> ActionResult:
    try:
        with get_session() as session:
            creator = CreatorRepository.get_by_id(session, creator_id)
            if creator is None:
                raise ActionError("Creator not found", NOT_FOUND)
            for key, value in values.items():
                setattr(creator, key, value)
            session.flush()
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error updating creator %s", creator_id)
        return ActionResult.fail(error)

    revalidate_path("/app/settings")
    revalidate_path(f"/c/{creator.slug}")
    return ActionResult.ok(data=creator)


def update_creator_profile(creator_id: str, payload: dict) -> ActionResult:
    try:
        data = CreatorProfileUpdate.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    values = {
        "display_name": data.display_name,
        "bio": data.bio,
        "email": data.email,
    }
    if data.avatar_url is not None:
        values["avatar_url"] = str(data.avatar_url)

    result = _update_creator(creator_id, values, "Failed to update profile")
    if result.success:
        # drop pages show the creator's name and avatar
        revalidate_path("/d/")
    return result


def update_creator_booking_settings(creator_id: str, payload: dict) -> ActionResult:
    try:
        data = BookingSettingsUpdate.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)
    return _update_creator(creator_id, data.model_dump(), "Failed to update booking settings")


def moderate_creator(creator_id: str, move: str) -> ActionResult:
    """Admin approve / suspend / reactivate; suspending also turns bookings off"""
    if move not in CREATOR_STATUS_MOVES:
        return ActionResult.fail(f"Unknown action: {move}", INVALID_STATE)
    expected, target = CREATOR_STATUS_MOVES[move]

    try:
        with get_session() as session:
            creator = CreatorRepository.get_by_id(session, creator_id)
            if creator is None:
                raise ActionError("Creator not found", NOT_FOUND)
            if creator.status != expected:
                raise ActionError(f"Creator is {creator.status.value}, cannot {move}", INVALID_STATE)
            creator.status = target
            if target == CreatorStatus.SUSPENDED:
                creator.booking_enabled = False
            session.flush()
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error moderating creator %s", creator_id)
        return ActionResult.fail("Failed to update creator")

    logger.info("Creator %s: %s -> %s", creator.slug, expected.value, target.value)
    revalidate_path(f"/c/{creator.slug}")
    revalidate_path("/d/")
    return ActionResult.ok(data=creator)


def set_booking_approval(creator_id: str, approved: bool) -> ActionResult:
    """Admin gate on top of the creator's own booking_enabled switch"""
    return _update_creator(creator_id, {"booking_approved": approved}, "Failed to update creator")
