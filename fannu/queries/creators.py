"""Creator lookups"""

from typing import Optional

from ..database import get_session, CreatorRepository
from ..database.models import Creator
from .base import safe_query


@safe_query(None)
def get_creator_by_slug(slug: str) -> Optional[Creator]:
    """Public lookup; only ACTIVE creators are visible"""
    with get_session() as session:
        return CreatorRepository.get_active_by_slug(session, slug)


@safe_query(None)
def get_creator_by_id(creator_id: str) -> Optional[Creator]:
    with get_session() as session:
        return CreatorRepository.get_by_id(session, creator_id)


@safe_query(None)
def get_creator_by_user_id(user_id: str) -> Optional[Creator]:
    with get_session() as session:
        return CreatorRepository.get_by_user_id(session, user_id)


@safe_query(list)
def get_all_creators() -> list[Creator]:
    with get_session() as session:
        return CreatorRepository.get_all(session)
