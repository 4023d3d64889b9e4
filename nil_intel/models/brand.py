"""
Brand models — brand records plus the signal/watchlist tables that decide
which brands the matching engine looks at.
"""
from sqlalchemy import Column, Integer, Boolean, Text, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func

from nil_intel.database import Base


class Brand(Base):
    __tablename__ = 'brands'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default='new')      # new..active/paused/blacklisted
    budget_tier = Column(Text, nullable=True)                 # same scale as follower tiers
    signal_platforms = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class BrandSignal(Base):
    __tablename__ = 'brand_signals'

    id = Column(Integer, primary_key=True, autoincrement=True)
    brand_id = Column(Integer, ForeignKey('brands.id'), nullable=True, index=True)
    platform = Column(Text, nullable=True)
    detected_at = Column(DateTime(timezone=True), server_default=func.now())


class BrandWatchlist(Base):
    __tablename__ = 'brand_watchlist'

    id = Column(Integer, primary_key=True, autoincrement=True)
    brand_id = Column(Integer, ForeignKey('brands.id'), nullable=False, index=True)
    active = Column(Boolean, default=True)
