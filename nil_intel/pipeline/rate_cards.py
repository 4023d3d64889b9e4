"""
RATE CARDS — weighted-percentile pricing benchmarks.

Two observation sources of different trust are flattened into one
Observation type before grouping, so the percentile math never knows where
a value came from:

  confirmed deals  → weight 1.0
  deal intel       → weight = extraction_confidence (0.5 when unknown)

Groups are keyed on (sport, platform, content_type, follower_tier,
engagement_tier). Groups with fewer than min_sample_size observations are
never written.

Deal intel carries no real follower/engagement tier, so it always lands in
the default buckets (micro / moderate). Rate cards for those buckets are
biased toward scraped data as a result.
"""
import logging
from collections import OrderedDict
from datetime import timedelta
from typing import Dict, List, Any, NamedTuple, Optional, Sequence, Tuple

from nil_intel.config import RATE_CARD_LOOKBACK_DAYS
from nil_intel.database import utcnow
from nil_intel.pipeline.base import BatchJob, JobResult
from nil_intel.pipeline.market_config import (
    DEFAULT_RATE_CARD_TABLES, RateCardTables, get_rate_card_tables,
)
from nil_intel.services import db

logger = logging.getLogger('pipeline.rate_cards')

PERCENTILES = (25, 50, 75)

GroupKey = Tuple[str, str, str, str, str]


class Observation(NamedTuple):
    value: float
    weight: float
    source: str          # 'deal' or 'deal_intel'
    group_key: GroupKey


def weighted_percentile(observations: Sequence[Tuple[float, float]], p: float) -> float:
    """
    Value at the p-th weighted percentile of (value, weight) pairs.

    Walks the values in ascending order and returns the first one whose
    cumulative weight reaches p% of the total. A single observation returns
    itself; zero total weight returns the smallest value.
    """
    if not observations:
        return 0
    ordered = sorted(observations, key=lambda o: o[0])
    if len(ordered) == 1:
        return ordered[0][0]

    total = sum(w for _, w in ordered)
    if total <= 0:
        return ordered[0][0]

    target = (p / 100) * total
    cumulative = 0.0
    for value, weight in ordered:
        cumulative += weight
        if cumulative >= target:
            return value
    return ordered[-1][0]


def engagement_tier_for(rate, tables: RateCardTables = DEFAULT_RATE_CARD_TABLES) -> str:
    rate = rate or 0
    for min_rate, tier in tables.engagement_tier_thresholds:
        if rate >= min_rate:
            return tier
    return tables.lowest_engagement_tier


def observation_from_deal_intel(row: Dict[str, Any],
                                tables: RateCardTables = DEFAULT_RATE_CARD_TABLES) -> Optional[Observation]:
    low = row.get('amount_low')
    high = row.get('amount_high')
    value = (low + high) / 2 if low and high else (low or 0)
    if value <= 0:
        return None

    weight = row.get('extraction_confidence')
    if weight is None:
        weight = tables.default_intel_weight

    key = (
        (row.get('sport') or tables.default_sport).lower(),
        row.get('platform') or tables.default_platform,
        row.get('content_type') or tables.default_content_type,
        tables.default_follower_tier,
        tables.default_engagement_tier,
    )
    return Observation(value, float(weight), 'deal_intel', key)


def observation_from_deal(row: Dict[str, Any],
                          tables: RateCardTables = DEFAULT_RATE_CARD_TABLES) -> Optional[Observation]:
    value = row.get('deal_value') or 0
    if value <= 0:
        return None

    key = (
        (row.get('sport') or tables.default_sport).lower(),
        row.get('platform') or tables.default_platform,
        row.get('content_type') or tables.default_content_type,
        row.get('athlete_valuation_tier') or tables.default_follower_tier,
        engagement_tier_for(row.get('athlete_engagement_rate'), tables),
    )
    return Observation(float(value), 1.0, 'deal', key)


def group_observations(observations: Sequence[Observation]) -> 'OrderedDict[GroupKey, List[Observation]]':
    groups = OrderedDict()
    for obs in observations:
        groups.setdefault(obs.group_key, []).append(obs)
    return groups


def aggregate_rate_cards(observations: Sequence[Observation],
                         tables: RateCardTables = DEFAULT_RATE_CARD_TABLES) -> Dict[str, Any]:
    """
    Pure aggregation step: group observations and compute p25/p50/p75.

    Returns {'cards': [{group_key, rate_low, rate_median, rate_high, sample_size}],
             'groups': int, 'suppressed': [group_key, ...]}.
    """
    groups = group_observations(observations)
    cards = []
    suppressed = []
    for key, members in groups.items():
        if len(members) < tables.min_sample_size:
            suppressed.append(key)
            continue
        pairs = [(o.value, o.weight) for o in members]
        low, median, high = (int(round(weighted_percentile(pairs, p))) for p in PERCENTILES)
        cards.append({
            'group_key': key,
            'rate_low': low,
            'rate_median': median,
            'rate_high': high,
            'sample_size': len(members),
        })
    return {'cards': cards, 'groups': len(groups), 'suppressed': suppressed}


class RateCardJob(BatchJob):
    name = 'rate_cards'
    description = 'Pool confirmed deals and deal intel into weighted percentile rate cards'
    apis = ['database']

    def run(self, lookback_days=None, **params) -> JobResult:
        if lookback_days is None:
            lookback_days = RATE_CARD_LOOKBACK_DAYS
        if lookback_days <= 0:
            raise ValueError(f"lookback_days must be positive, got {lookback_days}")

        tables = get_rate_card_tables()
        cutoff = utcnow() - timedelta(days=lookback_days)

        observations = []
        for row in db.load_deal_intel_observations(cutoff):
            obs = observation_from_deal_intel(row, tables)
            if obs:
                observations.append(obs)
        for row in db.load_confirmed_deal_observations(cutoff):
            obs = observation_from_deal(row, tables)
            if obs:
                observations.append(obs)

        aggregated = aggregate_rate_cards(observations, tables)
        result = JobResult(meta={
            'groups_processed': aggregated['groups'],
            'rate_cards_updated': 0,
            'rate_cards_skipped': len(aggregated['suppressed']),
            'observations': len(observations),
            'lookback_days': lookback_days,
        })
        result.skipped = len(aggregated['suppressed'])

        for card in aggregated['cards']:
            ok = db.upsert_rate_card(
                card['group_key'], card['rate_low'], card['rate_median'],
                card['rate_high'], card['sample_size'],
            )
            if ok:
                result.processed += 1
                result.meta['rate_cards_updated'] += 1
            else:
                result.failed += 1
                result.errors.append({'group': list(card['group_key']), 'error': 'rate card upsert failed'})

        logger.info(
            "Rate cards: %d groups, %d updated, %d below sample size, %d failed",
            aggregated['groups'], result.processed, result.skipped, result.failed,
        )
        return result
