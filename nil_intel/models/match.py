"""
Match model — one scored athlete×brand pairing, unique on (athlete_id, brand_id).

Status lifecycle:

    new ──► reviewed ──► approved ──► pursuing ──► converted
     │         │            │            │
     │         └──► declined ◄───────────┘
     └──► expired ──► new

Once a human moves a match into a protected status (approved, pursuing,
converted, declined) no automated run may touch the row again.
"""
from sqlalchemy import Column, Integer, Float, Text, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from nil_intel.database import Base


MATCH_STATUSES = ['new', 'reviewed', 'approved', 'pursuing', 'converted', 'declined', 'expired']

PROTECTED_STATUSES = frozenset({'approved', 'pursuing', 'converted', 'declined'})

ALLOWED_TRANSITIONS = {
    'new': {'reviewed', 'approved', 'declined', 'expired'},
    'reviewed': {'approved', 'declined', 'expired'},
    'approved': {'pursuing', 'declined'},
    'pursuing': {'converted', 'declined'},
    'converted': set(),
    'declined': set(),
    'expired': {'new'},
}


class InvalidMatchTransition(ValueError):
    """Raised when a status change is not part of the match lifecycle."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Match cannot move from '{current}' to '{target}'")


def is_protected(status) -> bool:
    """True when a human decision has locked the match against automated writes."""
    return status in PROTECTED_STATUSES


def can_transition(current, target) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def allows_automated_write(existing_status) -> bool:
    """Guard for the matching engine: a missing row or any non-protected row may be rewritten."""
    return existing_status is None or not is_protected(existing_status)


class Match(Base):
    __tablename__ = 'matches'
    __table_args__ = (
        UniqueConstraint('athlete_id', 'brand_id', name='uq_match_athlete_brand'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    athlete_id = Column(Integer, ForeignKey('athletes.id'), nullable=False, index=True)
    brand_id = Column(Integer, ForeignKey('brands.id'), nullable=False, index=True)
    match_score = Column(Float, nullable=False)       # 0.0-1.0
    score_breakdown = Column(JSON, default=dict)      # {category, content, platform, ...}
    status = Column(Text, nullable=False, default='new')
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def transition_to(self, target):
        """Apply a human status change, enforcing the lifecycle."""
        if not can_transition(self.status, target):
            raise InvalidMatchTransition(self.status, target)
        self.status = target
