"""
Athlete + social profile models — owned by the roster dashboard, read-only here.
"""
from sqlalchemy import Column, Integer, Float, Text, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from nil_intel.database import Base


class Athlete(Base):
    __tablename__ = 'athletes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(Text, default='')
    sport = Column(Text, nullable=True)
    skill_level = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default='active')   # active/paused/archived/...
    tags = Column(JSON, default=list)
    engagement_rate = Column(Float, nullable=True)            # percent, 0-100
    valuation_tier = Column(Text, nullable=True)              # follower tier name
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AthleteSocialProfile(Base):
    __tablename__ = 'athlete_social_profiles'
    __table_args__ = (
        UniqueConstraint('athlete_id', 'platform', name='uq_social_profile_athlete_platform'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    athlete_id = Column(Integer, ForeignKey('athletes.id'), nullable=False, index=True)
    platform = Column(Text, nullable=False)
    handle = Column(Text, default='')
    followers = Column(Integer, default=0)
    engagement_rate = Column(Float, nullable=True)
