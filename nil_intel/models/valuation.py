"""
AthleteValuation model — one snapshot per athlete per day (history by as_of).
"""
from sqlalchemy import Column, Integer, Float, Text, Date, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from nil_intel.database import Base


class AthleteValuation(Base):
    __tablename__ = 'athlete_valuations'
    __table_args__ = (
        UniqueConstraint('athlete_id', 'as_of', name='uq_athlete_valuation_as_of'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    athlete_id = Column(Integer, ForeignKey('athletes.id'), nullable=False, index=True)
    as_of = Column(Date, nullable=False)
    annual_low = Column(Integer, nullable=False)
    annual_high = Column(Integer, nullable=False)
    follower_tier = Column(Text, nullable=False)
    percentile = Column(Integer, nullable=False)      # 1-99
    confidence = Column(Integer, default=0)           # 0-100
    comparable_count = Column(Integer, default=0)
    valuation_data = Column(JSON, default=dict)       # per-post rates, packages, drivers, comps
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
