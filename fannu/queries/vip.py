"""VIP list lookups and audience stats"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from ..database import get_session, VipRepository
from ..database.models import VipChannel, VipSource, VipStatus, VipSubscription
from ..utils import utcnow
from .base import safe_query


@dataclass
class VipStats:
    total: int = 0
    last_30_days: int = 0
    by_channel: dict = field(default_factory=lambda: {channel.value: 0 for channel in VipChannel})
    by_source: dict = field(default_factory=lambda: {source.value: 0 for source in VipSource})


@safe_query(list)
def get_audience(
    creator_id: str,
    status: Optional[VipStatus] = VipStatus.ACTIVE,
    channel: Optional[VipChannel] = None,
    source: Optional[VipSource] = None,
    search: str = "",
) -> list[VipSubscription]:
    """Filtered VIP list for the audience page and its CSV export"""
    with get_session() as session:
        return VipRepository.search(session, creator_id, status, channel, source, search.strip() or None)


@safe_query(0)
def get_vip_count(creator_id: str) -> int:
    with get_session() as session:
        return VipRepository.count_active(session, creator_id)


@safe_query(list)
def get_recent_vips(creator_id: str, limit: int = 10) -> list[VipSubscription]:
    with get_session() as session:
        return VipRepository.get_active_by_creator(session, creator_id, limit=limit)


@safe_query(None)
def get_vip_subscription(creator_id: str, fan_phone: str) -> Optional[VipSubscription]:
    """ACTIVE subscription for the pair, with its creator loaded"""
    with get_session() as session:
        return VipRepository.get_active_with_creator(session, creator_id, fan_phone)


@safe_query(VipStats)
def get_vip_stats_by_creator_id(creator_id: str) -> VipStats:
    with get_session() as session:
        vips = VipRepository.get_active_by_creator(session, creator_id)

    cutoff = utcnow() - timedelta(days=30)
    stats = VipStats(total=len(vips))
    for vip in vips:
        if vip.joined_at >= cutoff:
            stats.last_30_days += 1
        stats.by_channel[vip.channel.value] += 1
        stats.by_source[vip.source.value] += 1
    return stats
