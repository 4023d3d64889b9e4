"""
Deal model — confirmed athlete×brand deals. Trusted observations for rate cards.
"""
from sqlalchemy import Column, Integer, Float, Boolean, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from nil_intel.database import Base


class Deal(Base):
    __tablename__ = 'deals'

    id = Column(Integer, primary_key=True, autoincrement=True)
    athlete_id = Column(Integer, ForeignKey('athletes.id'), nullable=False, index=True)
    brand_id = Column(Integer, ForeignKey('brands.id'), nullable=False, index=True)
    status = Column(Text, nullable=False, default='pending')
    exclusivity = Column(Boolean, default=False)
    deal_value = Column(Float, nullable=True)
    sport = Column(Text, nullable=True)
    platform = Column(Text, nullable=True)
    content_type = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
