"""
Creator identity

Sign-in is handled by the gateway in front of the app, which passes the
authenticated user id in a trusted header (settings.auth_user_header).
In development the first ACTIVE creator stands in when the header is
missing.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..database import get_session, CreatorRepository
from ..database.models import Creator
from ..queries import get_creator_by_user_id

logger = logging.getLogger(__name__)


def _demo_creator() -> Optional[Creator]:
    try:
        with get_session() as session:
            return CreatorRepository.get_first_active(session)
    except SQLAlchemyError:
        logger.exception("Demo creator lookup failed")
        return None


def get_current_creator(request: Request) -> Optional[Creator]:
    user_id = request.headers.get(settings.auth_user_header)
    if user_id:
        return get_creator_by_user_id(user_id)
    if settings.is_development:
        return _demo_creator()
    return None


def require_creator(request: Request) -> Creator:
    """Dependency for /app routes"""
    creator = get_current_creator(request)
    if creator is None:
        raise HTTPException(status_code=401, detail="Sign in with a creator account to continue")
    return creator


def ensure_owner(obj, creator: Creator):
    """404 unless obj exists and belongs to the creator"""
    if obj is None or obj.creator_id != creator.id:
        raise HTTPException(status_code=404, detail="Not found")
    return obj
