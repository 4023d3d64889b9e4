"""
RateCard model — one row per (sport, platform, content_type, follower_tier,
engagement_tier) group. Never written with fewer than 3 observations.
"""
from sqlalchemy import Column, Integer, Float, Text, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from nil_intel.database import Base


class RateCard(Base):
    __tablename__ = 'rate_cards'
    __table_args__ = (
        UniqueConstraint(
            'sport', 'platform', 'content_type', 'follower_tier', 'engagement_tier',
            name='uq_rate_card_group',
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    sport = Column(Text, nullable=False)
    platform = Column(Text, nullable=False)
    content_type = Column(Text, nullable=False)
    follower_tier = Column(Text, nullable=False)
    engagement_tier = Column(Text, nullable=False)
    rate_low = Column(Float, nullable=False)      # weighted p25
    rate_median = Column(Float, nullable=False)   # weighted p50
    rate_high = Column(Float, nullable=False)     # weighted p75
    sample_size = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
