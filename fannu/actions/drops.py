"""
Drop actions: create, edit, publish, end, delete and scheduled window changes
"""

import logging
import string
from datetime import datetime
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..database import get_session, DropRepository
from ..database.models import Drop, DropStatus
from ..utils import random_token, slugify, utcnow
from ..validation import DropCreate, DropUpdate, DropPublish
from ..web.page_cache import revalidate_path
from .result import ActionError, ActionResult, INVALID_STATE, NOT_FOUND

logger = logging.getLogger(__name__)

SLUG_SUFFIX_LENGTH = 6
PUBLISHABLE = [DropStatus.DRAFT, DropStatus.SCHEDULED]
ENDABLE = [DropStatus.DRAFT, DropStatus.SCHEDULED, DropStatus.LIVE]


def _revalidate_drop(drop: Drop) -> None:
    revalidate_path("/app/drops")
    revalidate_path(f"/app/drops/{drop.id}")
    revalidate_path(f"/d/{drop.slug}")
    if drop.creator is not None:
        revalidate_path(f"/c/{drop.creator.slug}")


def _unique_slug(session, title: str) -> str:
    slug = slugify(title) or "drop"
    if not DropRepository.slug_exists(session, slug):
        return slug
    suffix = random_token(SLUG_SUFFIX_LENGTH, string.ascii_lowercase + string.digits)
    base = slug[: 50 - SLUG_SUFFIX_LENGTH - 1].rstrip("-")
    return f"{base}-{suffix}"


def _dump(data) -> dict:
    values = data.model_dump(exclude_unset=True)
    if values.get("cover_image_url") is not None:
        values["cover_image_url"] = str(values["cover_image_url"])
    return values


def create_drop(creator_id: str, payload: dict) -> ActionResult:
    """Validate and insert a DRAFT drop; slots_remaining starts at total_slots"""
    try:
        data = DropCreate.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    values = _dump(data)
    values.setdefault("currency", data.currency)
    values.setdefault("vip_required", data.vip_required)
    try:
        with get_session() as session:
            drop = DropRepository.create(
                session,
                creator_id=creator_id,
                slug=_unique_slug(session, data.title),
                status=DropStatus.DRAFT,
                slots_remaining=data.total_slots,
                **values,
            )
    except SQLAlchemyError:
        logger.exception("Error creating drop for creator %s", creator_id)
        return ActionResult.fail("Failed to create drop")

    logger.info("Drop created: %s", drop.slug)
    revalidate_path("/app/drops")
    return ActionResult.ok(data=drop)


def update_drop(drop_id: str, payload: dict) -> ActionResult:
    """
    Apply the provided fields only.

    Changing total_slots keeps the number already sold, so
    slots_remaining moves by the same amount (never below zero).
    """
    try:
        data = DropUpdate.model_validate(payload)
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    values = _dump(data)
    try:
        with get_session() as session:
            drop = DropRepository.get_by_id(session, drop_id)
            if drop is None:
                raise ActionError("Drop not found", NOT_FOUND)

            if "total_slots" in values:
                new_total = values["total_slots"]
                sold = 0
                if drop.total_slots is not None and drop.slots_remaining is not None:
                    sold = drop.total_slots - drop.slots_remaining
                drop.slots_remaining = None if new_total is None else max(new_total - sold, 0)

            for key, value in values.items():
                setattr(drop, key, value)
            session.flush()
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error updating drop %s", drop_id)
        return ActionResult.fail("Failed to update drop")

    _revalidate_drop(drop)
    return ActionResult.ok(data=drop)


def _transition(drop_id: str, from_statuses: list[DropStatus], values: dict, error: str) -> ActionResult:
    try:
        with get_session() as session:
            if DropRepository.get_by_id(session, drop_id) is None:
                raise ActionError("Drop not found", NOT_FOUND)
            if not DropRepository.transition(session, drop_id, from_statuses, values):
                raise ActionError(error, INVALID_STATE)
            session.expire_all()
            drop = DropRepository.get_by_id(session, drop_id)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error updating drop %s", drop_id)
        return ActionResult.fail("Failed to update drop")

    _revalidate_drop(drop)
    return ActionResult.ok(data=drop)


def publish_drop(drop_id: str, payload: Optional[dict] = None) -> ActionResult:
    """LIVE now, or SCHEDULED when schedule_for lies in the future"""
    try:
        data = DropPublish.model_validate(payload or {})
    except ValidationError as exc:
        return ActionResult.invalid(exc)

    if data.schedule_for is not None and data.schedule_for > utcnow():
        values = {"status": DropStatus.SCHEDULED, "scheduled_at": data.schedule_for}
    else:
        values = {"status": DropStatus.LIVE}
    return _transition(drop_id, PUBLISHABLE, values, "Only draft or scheduled drops can be published")


def end_drop(drop_id: str) -> ActionResult:
    return _transition(drop_id, ENDABLE, {"status": DropStatus.ENDED}, "This drop has already ended")


def delete_drop(drop_id: str) -> ActionResult:
    """Delete a drop that has no purchases; linked broadcasts keep their text"""
    try:
        with get_session() as session:
            drop = DropRepository.get_by_id(session, drop_id)
            if drop is None:
                raise ActionError("Drop not found", NOT_FOUND)
            if DropRepository.has_purchases(session, drop_id):
                raise ActionError("This drop has purchases; end it instead", INVALID_STATE)
            DropRepository.delete(session, drop_id)
    except ActionError as exc:
        return ActionResult.from_error(exc)
    except SQLAlchemyError:
        logger.exception("Error deleting drop %s", drop_id)
        return ActionResult.fail("Failed to delete drop")

    logger.info("Drop deleted: %s", drop.slug)
    _revalidate_drop(drop)
    return ActionResult.ok()


def advance_drop_windows(now: Optional[datetime] = None) -> dict[str, int]:
    """
    Move drops along their schedule: SCHEDULED drops whose start has
    passed go LIVE, LIVE drops whose end has passed are ENDED.

    Returns counts keyed by "went_live" and "ended".
    """
    now = now or utcnow()
    counts = {"went_live": 0, "ended": 0}
    changed = []
    try:
        with get_session() as session:
            for drop in DropRepository.get_due_scheduled(session, now):
                if DropRepository.transition(session, drop.id, [DropStatus.SCHEDULED], {"status": DropStatus.LIVE}):
                    counts["went_live"] += 1
                    changed.append(drop.id)
            for drop in DropRepository.get_expired_live(session, now):
                if DropRepository.transition(session, drop.id, [DropStatus.LIVE], {"status": DropStatus.ENDED}):
                    counts["ended"] += 1
                    changed.append(drop.id)
            session.expire_all()
            changed_drops = [DropRepository.get_by_id(session, drop_id) for drop_id in set(changed)]
    except SQLAlchemyError:
        logger.exception("Failed to advance drop windows")
        return counts

    for drop in changed_drops:
        _revalidate_drop(drop)
    if changed:
        logger.info("Drop windows advanced: %d live, %d ended", counts["went_live"], counts["ended"])
    return counts
