"""
DealIntel + ScrapeRun models.

DealIntel is one candidate deal per source URL, deduplicated by fingerprint
(SHA-256 of the URL). ScrapeRun is the audit row written once per harvest.
"""
from sqlalchemy import Column, Integer, Float, Boolean, Text, DateTime, JSON
from sqlalchemy.sql import func

from nil_intel.database import Base


class DealIntel(Base):
    __tablename__ = 'deal_intel'

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_type = Column(Text, default='news')
    source_url = Column(Text, nullable=False, unique=True)
    source_title = Column(Text, default='')
    source_snippet = Column(Text, default='')
    fingerprint = Column(Text, nullable=False, unique=True)
    brand_name = Column(Text, nullable=True)
    athlete_name = Column(Text, nullable=True)
    amount_low = Column(Float, nullable=True)
    amount_high = Column(Float, nullable=True)
    sport = Column(Text, nullable=True)
    platform = Column(Text, nullable=True)          # filled during human triage
    content_type = Column(Text, nullable=True)      # filled during human triage
    extraction_confidence = Column(Float, default=0.0)   # 0.0-1.0
    reviewed = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ScrapeRun(Base):
    __tablename__ = 'scrape_runs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(Text, nullable=False, default='running')
    queries = Column(JSON, default=list)
    records_found = Column(Integer, default=0)
    records_ingested = Column(Integer, default=0)
    duplicates_skipped = Column(Integer, default=0)
    errors = Column(JSON, nullable=True)            # [{query, error}]
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
