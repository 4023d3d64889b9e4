"""
VALUATION — athlete social/sport/skill profile → annual NIL value range.

compute_valuation() is pure: no I/O, never raises on unknown sport/skill/tier
values (each falls back to a documented default in MarketTables).

ValuationSnapshotJob runs it for every active athlete (or one athlete),
prices three sponsorship packages, scores confidence from comparable deal
intel, and upserts one snapshot per athlete per day.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, List, Any, Optional, Sequence

from nil_intel.config import COMPARABLE_DEAL_LIMIT
from nil_intel.database import utcnow
from nil_intel.pipeline.base import BatchJob, JobResult
from nil_intel.pipeline.market_config import (
    DEFAULT_MARKET_TABLES, FollowerTier, MarketTables, RateCardEntry, get_market_tables,
)
from nil_intel.services import db

logger = logging.getLogger('pipeline.valuation')


@dataclass(frozen=True)
class SocialHandle:
    platform: str
    followers: int = 0
    engagement_rate: Optional[float] = None
    handle: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SocialHandle':
        rate = data.get('engagement_rate')
        return cls(
            platform=(data.get('platform') or '').lower(),
            followers=max(0, int(data.get('followers') or 0)),
            # 0 means "not reported" on the profile sync side
            engagement_rate=float(rate) if rate else None,
            handle=data.get('handle') or '',
        )


@dataclass
class Valuation:
    annual_low: int
    annual_high: int
    follower_tier: str
    percentile: int
    per_post_rates: List[Dict[str, Any]] = field(default_factory=list)
    drivers: List[Dict[str, str]] = field(default_factory=list)
    total_followers: int = 0
    engagement_rate: float = 0.0
    combined_multiplier: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_handles(handles) -> List[SocialHandle]:
    return [h if isinstance(h, SocialHandle) else SocialHandle.from_dict(h) for h in handles or []]


# ── Lookups ──────────────────────────────────────────────────────────────────

def get_follower_tier(total_followers: int, tables: MarketTables = DEFAULT_MARKET_TABLES) -> FollowerTier:
    """Largest tier whose floor is at or below the follower count. Tiers partition [0, inf)."""
    total = max(0, total_followers or 0)
    chosen = tables.follower_tiers[0]
    for tier in tables.follower_tiers:
        if total >= tier.min_followers:
            chosen = tier
    return chosen


def get_sport_multiplier(sport, tables: MarketTables = DEFAULT_MARKET_TABLES) -> float:
    return tables.sport_multipliers.get((sport or '').lower(), tables.default_sport_multiplier)


def get_skill_multiplier(skill_level, tables: MarketTables = DEFAULT_MARKET_TABLES) -> float:
    return tables.skill_multipliers.get((skill_level or '').lower(), tables.default_skill_multiplier)


def get_engagement_multiplier(engagement_rate: float, tables: MarketTables = DEFAULT_MARKET_TABLES) -> float:
    for min_rate, multiplier in tables.engagement_brackets:
        if engagement_rate >= min_rate:
            return multiplier
    return tables.engagement_floor


def resolve_engagement_rate(handles: Sequence[SocialHandle], engagement_rate=None,
                            tables: MarketTables = DEFAULT_MARKET_TABLES) -> float:
    """Explicit overall rate, else follower-weighted handle average, else the neutral default."""
    if engagement_rate:
        return float(engagement_rate)

    rated = [h for h in handles if h.engagement_rate is not None and h.engagement_rate > 0]
    weight = sum(h.followers for h in rated)
    if not rated or weight <= 0:
        return tables.default_engagement_rate
    return sum(h.engagement_rate * h.followers for h in rated) / weight


def count_active_platforms(handles: Sequence[SocialHandle], tables: MarketTables = DEFAULT_MARKET_TABLES) -> int:
    return sum(1 for h in handles if h.followers > tables.active_platform_min_followers)


def compute_per_post_rates(handles: Sequence[SocialHandle], tier_name: str,
                           rate_cards: Optional[Sequence[RateCardEntry]] = None,
                           tables: MarketTables = DEFAULT_MARKET_TABLES) -> List[Dict[str, Any]]:
    """Rate card rows for the athlete's tier on platforms where they have any followers."""
    cards = rate_cards if rate_cards else tables.default_rate_cards
    platforms = {h.platform.lower() for h in handles if h.followers > 0}
    return [
        {
            'platform': card.platform,
            'content_type': card.content_type,
            'rate_low': card.rate_low,
            'rate_high': card.rate_high,
        }
        for card in cards
        if card.follower_tier == tier_name and card.platform in platforms
    ]


def estimate_percentile(tier_index: int, engagement_rate: float, skill_level,
                        tables: MarketTables = DEFAULT_MARKET_TABLES) -> int:
    """Heuristic rank within sport, not a true statistical percentile. Clamped to [1, 99]."""
    engagement_bonus = 0
    for min_rate, bonus in tables.percentile_engagement_bonuses:
        if engagement_rate >= min_rate:
            engagement_bonus = bonus
            break
    skill_bonus = tables.percentile_skill_bonuses.get((skill_level or '').lower(), 0)

    raw = 10 + 15 * tier_index + engagement_bonus + skill_bonus
    return max(1, min(99, int(round(raw))))


def build_drivers(sport: str, sport_mult: float, skill_level: str, skill_mult: float,
                  engagement_rate: float, engagement_mult: float, active_platforms: int,
                  tier_name: str, total_followers: int,
                  tables: MarketTables = DEFAULT_MARKET_TABLES) -> List[Dict[str, str]]:
    """Human-readable explanation of each valuation factor: [{direction, label}]."""
    drivers = []
    top_tiers = {t.name for t in tables.follower_tiers[-2:]}
    bottom_tier = tables.follower_tiers[0].name

    if tier_name in top_tiers:
        drivers.append({
            'direction': 'positive',
            'label': f"{total_followers:,} total followers place you in the {tier_name} tier",
        })
    elif tier_name == bottom_tier:
        drivers.append({
            'direction': 'negative',
            'label': (f"{total_followers:,} total followers place you in the {tier_name} tier "
                      f"-- growing your audience will significantly increase your value"),
        })
    else:
        drivers.append({
            'direction': 'neutral',
            'label': f"{total_followers:,} total followers place you in the {tier_name} tier",
        })

    if sport_mult > 1.0:
        drivers.append({
            'direction': 'positive',
            'label': f"{sport} is a high-demand sport for NIL deals ({sport_mult}x multiplier)",
        })
    elif sport_mult < 1.0:
        drivers.append({
            'direction': 'negative',
            'label': f"{sport} has lower NIL market demand ({sport_mult}x multiplier)",
        })
    else:
        drivers.append({'direction': 'neutral', 'label': f"{sport} has average NIL market demand"})

    skill_name = skill_level.replace('_', ' ')
    if skill_mult >= 1.1:
        drivers.append({
            'direction': 'positive',
            'label': f"{skill_name} skill level boosts your value ({skill_mult}x)",
        })
    elif skill_mult <= 0.7:
        drivers.append({
            'direction': 'negative',
            'label': f"{skill_name} division level reduces your baseline ({skill_mult}x)",
        })

    if engagement_mult >= 1.2:
        drivers.append({
            'direction': 'positive',
            'label': f"Strong engagement rate ({engagement_rate:.1f}%) significantly increases your value",
        })
    elif engagement_mult <= 0.8:
        drivers.append({
            'direction': 'negative',
            'label': (f"Low engagement rate ({engagement_rate:.1f}%) reduces your value "
                      f"-- focus on authentic content to improve"),
        })

    if active_platforms > 1:
        bonus_pct = int(round((active_platforms - 1) * tables.multi_platform_bonus * 100))
        drivers.append({
            'direction': 'positive',
            'label': f"Active on {active_platforms} platforms (+{bonus_pct}% multi-platform bonus)",
        })
    else:
        step_pct = int(round(tables.multi_platform_bonus * 100))
        drivers.append({
            'direction': 'negative',
            'label': (f"Only active on 1 platform -- expanding to additional platforms "
                      f"can increase your value by {step_pct}% each"),
        })

    return drivers


# ── Main computation ─────────────────────────────────────────────────────────

def compute_valuation(sport, skill_level, handles, engagement_rate=None,
                      rate_cards: Optional[Sequence[RateCardEntry]] = None,
                      tables: MarketTables = DEFAULT_MARKET_TABLES) -> Valuation:
    """
    Full NIL valuation for one athlete.

    handles: SocialHandle values or dicts with platform/followers/engagement_rate.
    rate_cards: aggregated RateCardEntry rows; the built-in default table is
    used when none are supplied.
    """
    handles = _as_handles(handles)
    sport = (sport or 'other').lower()
    skill_level = (skill_level or 'unknown').lower()

    total_followers = sum(h.followers for h in handles)
    tier = get_follower_tier(total_followers, tables)
    tier_index = tables.follower_tiers.index(tier)

    sport_mult = get_sport_multiplier(sport, tables)
    skill_mult = get_skill_multiplier(skill_level, tables)
    effective_engagement = resolve_engagement_rate(handles, engagement_rate, tables)
    engagement_mult = get_engagement_multiplier(effective_engagement, tables)

    active_platforms = count_active_platforms(handles, tables)
    platform_mult = 1 + tables.multi_platform_bonus * max(0, active_platforms - 1)

    raw = sport_mult * skill_mult * engagement_mult * platform_mult
    combined = max(tables.multiplier_min, min(tables.multiplier_max, raw))

    return Valuation(
        annual_low=int(round(tier.base_low * combined)),
        annual_high=int(round(tier.base_high * combined)),
        follower_tier=tier.name,
        percentile=estimate_percentile(tier_index, effective_engagement, skill_level, tables),
        per_post_rates=compute_per_post_rates(handles, tier.name, rate_cards, tables),
        drivers=build_drivers(
            sport, sport_mult, skill_level, skill_mult,
            effective_engagement, engagement_mult, active_platforms,
            tier.name, total_followers, tables,
        ),
        total_followers=total_followers,
        engagement_rate=effective_engagement,
        combined_multiplier=combined,
    )


# ── Packages + confidence ────────────────────────────────────────────────────

PACKAGE_SPECS = (
    {
        'name': 'Starter',
        'deliverables': (('ig_reel', 1), ('ig_story', 3)),
        'usage_days': 30,
        'usage_type': 'organic',
        'exclusivity_days': 0,
        'exclusivity_scope': 'none',
    },
    {
        'name': 'Growth',
        'deliverables': (('ig_reel', 2), ('ig_story', 6), ('tiktok_post', 1)),
        'usage_days': 60,
        'usage_type': 'organic',
        'exclusivity_days': 30,
        'exclusivity_scope': 'category',
    },
    {
        'name': 'Signature',
        'deliverables': (('ig_reel', 3), ('ig_story', 9), ('tiktok_post', 2)),
        'usage_days': 90,
        'usage_type': 'paid whitelisting optional',
        'exclusivity_days': 60,
        'exclusivity_scope': 'category',
    },
)

FALLBACK_UNIT_RATE = (50, 200)


def build_packages(per_post_rates: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Price the three sponsorship packages from per-post rates. Missing content types use FALLBACK_UNIT_RATE."""
    rate_map = {r['content_type']: (r['rate_low'], r['rate_high']) for r in per_post_rates}

    packages = []
    for pkg in PACKAGE_SPECS:
        items = []
        total_low = total_high = 0
        for content_type, quantity in pkg['deliverables']:
            unit_low, unit_high = rate_map.get(content_type, FALLBACK_UNIT_RATE)
            items.append({
                'content_type': content_type,
                'quantity': quantity,
                'unit_rate_low': unit_low,
                'unit_rate_high': unit_high,
                'total_low': unit_low * quantity,
                'total_high': unit_high * quantity,
            })
            total_low += unit_low * quantity
            total_high += unit_high * quantity

        packages.append({
            'name': pkg['name'],
            'deliverables': items,
            'total_low': total_low,
            'total_high': total_high,
            'usage_days': pkg['usage_days'],
            'usage_type': pkg['usage_type'],
            'exclusivity_days': pkg['exclusivity_days'],
            'exclusivity_scope': pkg['exclusivity_scope'],
        })
    return packages


def compute_confidence(sample_size: int, avg_verification: float, median_comp_age_days: float,
                       fields_present: int, total_fields: int = 6) -> int:
    """0-100: sample size, verification, recency and profile completeness, 25 points each."""
    sample_score = 25 * min(1.0, sample_size / 10)
    verification_score = 25 * min(1.0, avg_verification / 0.8)
    recency_score = 25 * max(0.0, min(1.0, 1 - median_comp_age_days / 180))
    completeness_score = 25 * (fields_present / total_fields if total_fields > 0 else 0)
    return int(round(sample_score + verification_score + recency_score + completeness_score))


def _age_days(created_at) -> int:
    if created_at is None:
        return 90
    now = utcnow()
    if created_at.tzinfo is None:
        # SQLite hands back naive UTC
        now = now.replace(tzinfo=None)
    return int(round((now - created_at).total_seconds() / 86400))


def summarize_comparables(comparables: List[Dict[str, Any]]):
    """(sample_size, avg_verification, median_age_days). No comparables → (0, 0.0, 90)."""
    if not comparables:
        return 0, 0.0, 90
    avg_verification = sum(c.get('verification_score') or 0.5 for c in comparables) / len(comparables)
    ages = sorted(_age_days(c.get('created_at')) for c in comparables)
    return len(comparables), avg_verification, ages[len(ages) // 2]


def count_profile_fields(athlete: Dict[str, Any], handles: Sequence[SocialHandle]) -> int:
    """Completeness signal out of 6: sport, skill, handles, engagement, any handle name, plus the record itself."""
    present = 1
    if athlete.get('sport'):
        present += 1
    if athlete.get('skill_level'):
        present += 1
    if handles:
        present += 1
    if athlete.get('engagement_rate'):
        present += 1
    if any(h.handle for h in handles):
        present += 1
    return present


# ── Batch job ────────────────────────────────────────────────────────────────

class ValuationSnapshotJob(BatchJob):
    name = 'valuation'
    description = 'Daily valuation snapshot per athlete: range, rates, packages, confidence'
    apis = ['database']

    def run(self, athlete_id=None, **params) -> JobResult:
        result = JobResult(meta={'athletes_processed': 0, 'valuations_updated': 0})
        tables = get_market_tables()
        today = date.today()

        athletes = db.load_athletes(athlete_id=athlete_id)
        if not athletes:
            logger.warning("No athletes found (athlete_id=%s)", athlete_id)
            return result

        rate_card_cache = {}
        for athlete in athletes:
            try:
                outcome = self._snapshot_athlete(athlete, today, tables, rate_card_cache)
            except Exception as e:
                logger.error("Valuation failed for athlete %s", athlete['id'], exc_info=True)
                result.failed += 1
                result.errors.append({'athlete_id': athlete['id'], 'error': str(e)})
                continue

            if outcome == 'skipped':
                result.skipped += 1
                continue
            result.meta['athletes_processed'] += 1
            if outcome == 'updated':
                result.processed += 1
                result.meta['valuations_updated'] += 1
            else:
                result.failed += 1
                result.errors.append({'athlete_id': athlete['id'], 'error': 'valuation upsert failed'})

        logger.info(
            "Valuation snapshot complete: %d updated, %d skipped, %d failed",
            result.processed, result.skipped, result.failed,
        )
        return result

    def _snapshot_athlete(self, athlete, today, tables, rate_card_cache):
        handles = _as_handles(db.load_social_profiles([athlete['id']]).get(athlete['id'], []))
        if not handles:
            logger.info("No social profiles for athlete %s, skipping", athlete['id'])
            return 'skipped'

        sport = (athlete.get('sport') or 'other').lower()
        if sport not in rate_card_cache:
            rate_card_cache[sport] = db.load_rate_cards_for_sport(sport)

        valuation = compute_valuation(
            sport,
            athlete.get('skill_level'),
            handles,
            engagement_rate=athlete.get('engagement_rate'),
            rate_cards=rate_card_cache[sport],
            tables=tables,
        )

        try:
            comparables = db.find_comparable_deals(sport, COMPARABLE_DEAL_LIMIT)
        except Exception:
            logger.error("Comparable deal lookup failed for athlete %s", athlete['id'], exc_info=True)
            comparables = []

        sample_size, avg_verification, median_age = summarize_comparables(comparables)
        confidence = compute_confidence(
            sample_size, avg_verification, median_age, count_profile_fields(athlete, handles),
        )
        packages = build_packages(valuation.per_post_rates)

        per_post = {}
        for rate in valuation.per_post_rates:
            per_post.setdefault(rate['platform'], []).append({
                'content_type': rate['content_type'],
                'rate_low': rate['rate_low'],
                'rate_high': rate['rate_high'],
            })

        valuation_data = {
            'annual_low': valuation.annual_low,
            'annual_high': valuation.annual_high,
            'follower_tier': valuation.follower_tier,
            'percentile': valuation.percentile,
            'per_post': per_post,
            'packages': packages,
            'drivers': valuation.drivers,
            'confidence': confidence,
            'comparable_count': sample_size,
            'comparables': [
                {
                    'rank': idx,
                    'deal_intel_id': c.get('id'),
                    'brand_name': c.get('brand_name'),
                    'amount_low': c.get('amount_low'),
                    'amount_high': c.get('amount_high'),
                    'sport': c.get('sport'),
                    'verification_score': c.get('verification_score'),
                }
                for idx, c in enumerate(comparables, 1)
            ],
        }

        stored = db.persist_valuation(athlete['id'], today, {
            'annual_low': valuation.annual_low,
            'annual_high': valuation.annual_high,
            'follower_tier': valuation.follower_tier,
            'percentile': valuation.percentile,
            'confidence': confidence,
            'comparable_count': sample_size,
            'valuation_data': valuation_data,
        })
        return 'updated' if stored else 'failed'
