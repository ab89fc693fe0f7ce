"""Broadcast lookups, stats and audience sizing"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func

from ..database import get_session, BroadcastRepository, PurchaseRepository, VipRepository
from ..database.models import Broadcast, BroadcastSegment, BroadcastStatus
from .base import safe_query


@dataclass
class BroadcastStats:
    total: int = 0
    sent: int = 0
    scheduled: int = 0
    draft: int = 0


@safe_query(list)
def get_broadcasts_by_creator_id(creator_id: str, status: Optional[BroadcastStatus] = None) -> list[Broadcast]:
    """Broadcasts newest first, each with its linked drop loaded"""
    with get_session() as session:
        return BroadcastRepository.get_by_creator(session, creator_id, status)


@safe_query(None)
def get_broadcast_by_id(broadcast_id: str) -> Optional[Broadcast]:
    with get_session() as session:
        return BroadcastRepository.get_by_id(session, broadcast_id)


@safe_query(BroadcastStats)
def get_broadcast_stats_by_creator_id(creator_id: str) -> BroadcastStats:
    with get_session() as session:
        rows = (
            session.query(Broadcast.status, func.count(Broadcast.id))
            .filter(Broadcast.creator_id == creator_id)
            .group_by(Broadcast.status)
            .all()
        )
    counts = {status: count for status, count in rows}
    return BroadcastStats(
        total=sum(counts.values()),
        sent=counts.get(BroadcastStatus.SENT, 0),
        scheduled=counts.get(BroadcastStatus.SCHEDULED, 0),
        draft=counts.get(BroadcastStatus.DRAFT, 0),
    )


def count_segment_recipients(session, creator_id: str, segment: BroadcastSegment) -> int:
    """ALL and VIP_ONLY reach active VIPs; PURCHASERS reach distinct paid buyers"""
    if segment == BroadcastSegment.PURCHASERS:
        return PurchaseRepository.count_distinct_paid_buyers(session, creator_id)
    return VipRepository.count_active(session, creator_id)


@safe_query(0)
def get_recipients_count(creator_id: str, segment: BroadcastSegment) -> int:
    with get_session() as session:
        return count_segment_recipients(session, creator_id, BroadcastSegment(segment))
