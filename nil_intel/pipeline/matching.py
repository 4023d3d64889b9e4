"""
MATCHING — athlete×brand compatibility scores with protected upserts.

Flow per run:
  1. Scope candidates (single ids, or recent-signal ∪ watchlist brands × active athletes)
  2. Hard filters: blacklisted brand, paused/archived athlete, open deal for
     the pair, protected existing match
  3. Seven weighted sub-scores → total; drop total < min_score
  4. Upsert survivors in chunks; the protected guard is re-checked inside
     each chunk's transaction

Content and demographic sub-scores are fixed placeholders until there is a
model to back them.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Any, Optional, Set

from nil_intel.config import (
    ATHLETE_INACTIVE_STATUSES, BRAND_BLOCKED_STATUS, MATCH_ATHLETE_LIMIT,
    MATCH_BATCH_SIZE, MATCH_SIGNAL_WINDOW_DAYS, MATCH_TTL_DAYS,
)
from nil_intel.database import utcnow
from nil_intel.models.match import is_protected
from nil_intel.pipeline.base import BatchJob, JobResult
from nil_intel.pipeline.market_config import (
    DEFAULT_MATCHING_TABLES, MatchingTables,
    get_market_tables, get_matching_tables,
)
from nil_intel.pipeline.valuation import get_follower_tier
from nil_intel.services import db

logger = logging.getLogger('pipeline.matching')


@dataclass
class AthleteContext:
    """Per-athlete inputs to scoring, gathered once per run."""
    platforms: Set[str] = field(default_factory=set)
    follower_tier: Optional[str] = None
    valuation_tier: Optional[str] = None
    open_deal_count: int = 0
    has_exclusive_deal: bool = False


# ── Sub-scores ───────────────────────────────────────────────────────────────

def category_score(brand_category, sport, tags, tables: MatchingTables = DEFAULT_MATCHING_TABLES) -> float:
    if not brand_category:
        return 0.3

    category = brand_category.lower()
    sport = (sport or '').lower()
    tags = [t.lower() for t in (tags or []) if t]

    if sport and (sport in category or category in sport):
        return 1.0
    if any(kw in category for kw in tables.sports_adjacent_keywords):
        return 0.7
    if any(tag in category or category in tag for tag in tags):
        return 0.6
    if any(kw in category for kw in tables.lifestyle_keywords):
        return 0.4
    return 0.2


def platform_score(athlete_platforms, brand_platforms) -> float:
    brand = {p.lower() for p in brand_platforms or [] if p}
    athlete = {p.lower() for p in athlete_platforms or [] if p}
    if not brand:
        return 0.5
    if not athlete:
        return 0.2
    return min(1.0, len(athlete & brand) / len(brand))


def engagement_score(engagement_rate, follower_tier, tables: MatchingTables = DEFAULT_MATCHING_TABLES) -> float:
    """Athlete engagement relative to the average for their follower tier."""
    if not engagement_rate:
        return 0.5

    average = tables.tier_engagement_averages.get(
        follower_tier or 'micro', tables.default_tier_engagement_average,
    )
    ratio = engagement_rate / average
    if ratio >= 1.5:
        return 1.0
    if ratio >= 1.0:
        return 0.7
    if ratio >= 0.7:
        return 0.5
    return 0.3


def availability_score(has_exclusive_deal: bool, open_deal_count: int) -> float:
    if has_exclusive_deal:
        return 0.0
    if open_deal_count > 3:
        return 0.5
    return 1.0


def budget_score(brand_budget_tier, athlete_valuation_tier, tables: MatchingTables = DEFAULT_MATCHING_TABLES) -> float:
    """Distance between brand budget tier and athlete valuation tier on the shared tier scale."""
    if not brand_budget_tier or not athlete_valuation_tier:
        return 0.5

    order = tables.tier_order
    brand_tier = brand_budget_tier.lower()
    athlete_tier = athlete_valuation_tier.lower()
    if brand_tier not in order or athlete_tier not in order:
        return 0.5

    distance = abs(order.index(brand_tier) - order.index(athlete_tier))
    return {0: 1.0, 1: 0.7, 2: 0.4}.get(distance, 0.2)


def total_score(breakdown: Dict[str, float], tables: MatchingTables = DEFAULT_MATCHING_TABLES) -> float:
    return sum(tables.weights[name] * breakdown[name] for name in tables.weights)


def score_pair(athlete: Dict[str, Any], brand: Dict[str, Any], context: AthleteContext,
               tables: MatchingTables = DEFAULT_MATCHING_TABLES) -> Dict[str, Any]:
    """Sub-score breakdown + weighted total for one pair. No filtering, no I/O."""
    breakdown = {
        'category': category_score(brand.get('category'), athlete.get('sport'), athlete.get('tags'), tables),
        'content': tables.content_placeholder,
        'platform': platform_score(context.platforms, brand.get('signal_platforms')),
        'demo': tables.demo_placeholder,
        'engagement': engagement_score(athlete.get('engagement_rate'), context.follower_tier, tables),
        'availability': availability_score(context.has_exclusive_deal, context.open_deal_count),
        'budget': budget_score(brand.get('budget_tier'), context.valuation_tier, tables),
    }
    return {'breakdown': breakdown, 'total': total_score(breakdown, tables)}


# ── Batch job ────────────────────────────────────────────────────────────────

def _chunks(rows, size):
    for i in range(0, len(rows), size):
        yield i // size, rows[i:i + size]


class MatchingJob(BatchJob):
    name = 'matching'
    description = 'Score athlete×brand pairs and upsert new matches'
    apis = ['database']

    def run(self, athlete_id=None, brand_id=None, batch_size=None, **params) -> JobResult:
        if batch_size is None:
            batch_size = MATCH_BATCH_SIZE
        if not isinstance(batch_size, int) or batch_size <= 0:
            raise ValueError(f"batch_size must be a positive integer, got {batch_size!r}")

        counters = {
            'matches_upserted': 0,
            'matches_protected': 0,
            'pairs_scored': 0,
            'pairs_filtered': 0,
            'pairs_below_threshold': 0,
            'brands_processed': 0,
            'athletes_evaluated': 0,
        }
        result = JobResult(meta=counters)
        tables = get_matching_tables()
        market = get_market_tables()

        if brand_id is not None:
            brand_ids = [brand_id]
        else:
            since = utcnow() - timedelta(days=MATCH_SIGNAL_WINDOW_DAYS)
            brand_ids = db.load_candidate_brand_ids(since)
        brands = db.load_brands(brand_ids)
        athletes = db.load_athletes(athlete_id=athlete_id, limit=MATCH_ATHLETE_LIMIT)

        if not brands or not athletes:
            logger.info("Nothing to match (%d brands, %d athletes)", len(brands), len(athletes))
            return result

        athlete_ids = [a['id'] for a in athletes]
        open_deals = db.load_open_deals(athlete_ids)
        open_pairs = {(d['athlete_id'], d['brand_id']) for d in open_deals}
        contexts = self._build_contexts(athletes, open_deals, market)
        existing = db.load_match_statuses(athlete_ids, [b['id'] for b in brands])

        expires_at = utcnow() + timedelta(days=MATCH_TTL_DAYS)
        rows = []
        evaluated = set()

        for brand in brands:
            counters['brands_processed'] += 1
            if brand.get('status') == BRAND_BLOCKED_STATUS:
                counters['pairs_filtered'] += len(athletes)
                continue

            for athlete in athletes:
                pair = (athlete['id'], brand['id'])
                if athlete.get('status') in ATHLETE_INACTIVE_STATUSES or pair in open_pairs:
                    counters['pairs_filtered'] += 1
                    continue
                if is_protected(existing.get(pair)):
                    counters['matches_protected'] += 1
                    continue

                evaluated.add(athlete['id'])
                scored = score_pair(athlete, brand, contexts[athlete['id']], tables)
                counters['pairs_scored'] += 1
                if scored['total'] < tables.min_score:
                    counters['pairs_below_threshold'] += 1
                    continue

                rows.append({
                    'athlete_id': athlete['id'],
                    'brand_id': brand['id'],
                    'match_score': round(scored['total'], 2),
                    'score_breakdown': scored['breakdown'],
                    'expires_at': expires_at,
                })

        counters['athletes_evaluated'] = len(evaluated)

        for index, chunk in _chunks(rows, batch_size):
            outcome = db.upsert_matches(chunk)
            if outcome['error']:
                result.failed += len(chunk)
                result.errors.append({'chunk': index, 'rows': len(chunk), 'error': outcome['error']})
                continue
            counters['matches_upserted'] += outcome['upserted']
            counters['matches_protected'] += outcome['protected']

        result.processed = counters['matches_upserted']
        result.skipped = (
            counters['pairs_filtered'] + counters['pairs_below_threshold'] + counters['matches_protected']
        )
        logger.info(
            "Matching complete: %d upserted, %d protected, %d scored, %d filtered, %d below threshold",
            counters['matches_upserted'], counters['matches_protected'], counters['pairs_scored'],
            counters['pairs_filtered'], counters['pairs_below_threshold'],
        )
        return result

    def _build_contexts(self, athletes, open_deals, market) -> Dict[int, AthleteContext]:
        athlete_ids = [a['id'] for a in athletes]
        profiles = db.load_social_profiles(athlete_ids)
        stored_tiers = db.load_latest_valuation_tiers(athlete_ids)

        contexts = {}
        for athlete in athletes:
            athlete_profiles = profiles.get(athlete['id'], [])
            follower_tier = None
            if athlete_profiles:
                total = sum(max(0, p['followers'] or 0) for p in athlete_profiles)
                follower_tier = get_follower_tier(total, market).name
            contexts[athlete['id']] = AthleteContext(
                platforms={p['platform'].lower() for p in athlete_profiles if p['platform']},
                follower_tier=follower_tier,
                valuation_tier=athlete.get('valuation_tier') or stored_tiers.get(athlete['id']),
            )

        for deal in open_deals:
            ctx = contexts.get(deal['athlete_id'])
            if ctx is None:
                continue
            ctx.open_deal_count += 1
            if deal['exclusivity']:
                ctx.has_exclusive_deal = True
        return contexts
