"""
Database engine, session factory and the shared clock.

Defaults to SQLite for local dev, Postgres in production. get_session()
always returns a real session. utcnow() is the clock every job compares
stored timestamps against: server_default=func.now() writes UTC.
"""
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from nil_intel.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosted Postgres URLs use postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine)


def get_session():
    """Return a new DB session."""
    return SessionLocal()


def utcnow():
    """Timezone-aware UTC now."""
    return datetime.now(timezone.utc)
