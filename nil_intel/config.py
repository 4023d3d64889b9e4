"""
Centralized configuration — env vars, job defaults, shared constants.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis (RQ job queue) ──────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
JOB_TIMEOUT_SECONDS = int(os.getenv('JOB_TIMEOUT_SECONDS', '3600'))

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Google Custom Search (deal intel harvesting) ─────────────────────────────
GOOGLE_CUSTOM_SEARCH_KEY = os.getenv('GOOGLE_CUSTOM_SEARCH_KEY')
GOOGLE_SEARCH_ENGINE_ID = os.getenv('GOOGLE_SEARCH_ENGINE_ID')
GOOGLE_SEARCH_URL = 'https://www.googleapis.com/customsearch/v1'

# ── Job defaults ──────────────────────────────────────────────────────────────
MATCH_BATCH_SIZE = int(os.getenv('MATCH_BATCH_SIZE', '100'))
MATCH_ATHLETE_LIMIT = int(os.getenv('MATCH_ATHLETE_LIMIT', '500'))
MATCH_SIGNAL_WINDOW_DAYS = 30
MATCH_TTL_DAYS = 30
RATE_CARD_LOOKBACK_DAYS = int(os.getenv('RATE_CARD_LOOKBACK_DAYS', '180'))
COMPARABLE_DEAL_LIMIT = 10

DEFAULT_SEARCH_QUERIES = [
    '"NIL deal" college athlete 2026',
    '"NIL partnership" announcement',
    'college athlete sponsorship deal',
    'NIL marketplace deal value',
]

# ── Status values ─────────────────────────────────────────────────────────────
ATHLETE_INACTIVE_STATUSES = {'paused', 'archived'}
BRAND_BLOCKED_STATUS = 'blacklisted'
DEAL_OPEN_STATUSES = ['active', 'pending']

