"""Shared test fixtures."""
from datetime import datetime

import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from nil_intel.database import Base


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import nil_intel.models.athlete
    import nil_intel.models.brand
    import nil_intel.models.deal
    import nil_intel.models.deal_intel
    import nil_intel.models.match
    import nil_intel.models.rate_card
    import nil_intel.models.valuation
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Session for seeding and assertions. Seed data must be committed before helpers run."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_engine):
    """
    Route get_session() calls inside nil_intel.services.db to test sessions.

    The module does `from nil_intel.database import get_session` at import
    time, so the local binding is what needs patching. Each call gets a new
    session on the same in-memory engine, so close() in production code does
    not tear down the test database.
    """
    TestSession = sessionmaker(bind=db_engine)
    with patch('nil_intel.services.db.get_session', side_effect=lambda: TestSession()):
        yield TestSession


@pytest.fixture(autouse=True)
def reset_market_config():
    from nil_intel.pipeline.market_config import reset_cache
    reset_cache()
    yield
    reset_cache()


@pytest.fixture
def mock_redis():
    """Mock Redis client."""
    mock = MagicMock()
    with patch('nil_intel.extensions.redis_client', mock):
        yield mock


# ── Seed factories ───────────────────────────────────────────────────────────

@pytest.fixture
def seed(db_session):
    """Factory: add a model row with overrides, commit, return its id."""
    def _seed(model, **fields):
        row = model(**fields)
        db_session.add(row)
        db_session.commit()
        return row.id
    return _seed


@pytest.fixture
def make_athlete(seed):
    from nil_intel.models.athlete import Athlete, AthleteSocialProfile

    def _make(profiles=None, **overrides):
        fields = dict(
            full_name='Jordan Miles',
            sport='basketball',
            skill_level='d1_starter',
            status='active',
            tags=['hoops', 'fitness'],
            engagement_rate=None,
            valuation_tier=None,
            created_at=datetime(2026, 1, 10, 12, 0, 0),
        )
        fields.update(overrides)
        athlete_id = seed(Athlete, **fields)
        for p in profiles or []:
            seed(AthleteSocialProfile, athlete_id=athlete_id, **p)
        return athlete_id
    return _make


@pytest.fixture
def make_brand(seed):
    from nil_intel.models.brand import Brand

    def _make(**overrides):
        fields = dict(
            name='Peak Hydration',
            category='basketball apparel',
            status='active',
            budget_tier='mid',
            signal_platforms=['instagram'],
            created_at=datetime(2026, 1, 10, 12, 0, 0),
        )
        fields.update(overrides)
        return seed(Brand, **fields)
    return _make


@pytest.fixture
def sample_handles():
    """Handle dicts resembling synced social profiles."""
    return [
        {'platform': 'instagram', 'handle': '@jmiles', 'followers': 12000, 'engagement_rate': 4.5},
        {'platform': 'tiktok', 'handle': '@jmiles', 'followers': 8000, 'engagement_rate': 6.0},
    ]
