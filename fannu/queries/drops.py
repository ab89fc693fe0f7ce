"""Drop lookups and per-creator drop stats"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, and_

from ..database import get_session, CreatorRepository, DropRepository
from ..database.models import Drop, DropStatus, Purchase, PaymentStatus
from .base import safe_query


@dataclass
class DropStats:
    total_drops: int = 0
    live_drops: int = 0
    total_revenue: int = 0
    total_sales: int = 0


@safe_query(None)
def get_drop_by_slug(slug: str) -> Optional[Drop]:
    """Drop with its creator loaded"""
    with get_session() as session:
        return DropRepository.get_by_slug(session, slug)


@safe_query(None)
def get_drop_by_id(drop_id: str) -> Optional[Drop]:
    with get_session() as session:
        return DropRepository.get_by_id(session, drop_id)


@safe_query(list)
def get_drops_by_creator_id(creator_id: str) -> list[Drop]:
    with get_session() as session:
        return DropRepository.get_by_creator(session, creator_id)


@safe_query(list)
def get_live_drops_by_creator_id(creator_id: str) -> list[Drop]:
    """LIVE and SCHEDULED drops, newest first"""
    with get_session() as session:
        return DropRepository.get_visible_by_creator(session, creator_id)


@safe_query(list)
def get_drops_by_creator_slug(creator_slug: str) -> list[Drop]:
    with get_session() as session:
        creator = CreatorRepository.get_active_by_slug(session, creator_slug)
        if creator is None:
            return []
        return DropRepository.get_visible_by_creator(session, creator.id)


@safe_query(DropStats)
def get_drop_stats_by_creator_id(creator_id: str) -> DropStats:
    with get_session() as session:
        total_drops = session.query(func.count(Drop.id)).filter(Drop.creator_id == creator_id).scalar() or 0
        live_drops = (
            session.query(func.count(Drop.id))
            .filter(and_(Drop.creator_id == creator_id, Drop.status == DropStatus.LIVE))
            .scalar()
        ) or 0

        revenue, sales = (
            session.query(
                func.coalesce(func.sum(Purchase.amount), 0),
                func.coalesce(func.sum(Purchase.quantity), 0),
            )
            .join(Drop, Purchase.drop_id == Drop.id)
            .filter(and_(Drop.creator_id == creator_id, Purchase.payment_status == PaymentStatus.PAID))
            .one()
        )

        return DropStats(
            total_drops=total_drops,
            live_drops=live_drops,
            total_revenue=int(revenue),
            total_sales=int(sales),
        )
