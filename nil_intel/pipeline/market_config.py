"""
Market table loader — valuation multipliers, follower tiers, match weights,
rate-card grouping defaults.

Same pattern as the other YAML configs: market_config.yaml with an in-memory
cache and a hardcoded fallback. YAML sections are merged over the defaults
one top-level section at a time, so the file only needs the sections being
tuned. The loaded dict is frozen into MarketTables / MatchingTables /
RateCardTables values that the pure engine functions take as arguments.
"""
import copy
import logging
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Tuple

import yaml

logger = logging.getLogger('pipeline.market_config')


_market_config = None
_tables_cache = {}


# ── Value types ──────────────────────────────────────────────────────────────

class FollowerTier(NamedTuple):
    name: str
    min_followers: int
    base_low: int
    base_high: int


class RateCardEntry(NamedTuple):
    """One per-post price band for a content type at a follower tier."""
    platform: str
    content_type: str
    follower_tier: str
    rate_low: float
    rate_high: float


@dataclass(frozen=True)
class MarketTables:
    """Immutable lookup tables for the valuation engine."""
    follower_tiers: Tuple[FollowerTier, ...]
    sport_multipliers: Mapping[str, float]
    default_sport_multiplier: float
    skill_multipliers: Mapping[str, float]
    default_skill_multiplier: float
    engagement_brackets: Tuple[Tuple[float, float], ...]   # (min_rate, multiplier), descending
    engagement_floor: float
    default_engagement_rate: float
    multi_platform_bonus: float
    active_platform_min_followers: int
    multiplier_min: float
    multiplier_max: float
    percentile_engagement_bonuses: Tuple[Tuple[float, int], ...]
    percentile_skill_bonuses: Mapping[str, int]
    default_rate_cards: Tuple[RateCardEntry, ...]


@dataclass(frozen=True)
class MatchingTables:
    """Immutable weights and thresholds for the matching engine."""
    weights: Mapping[str, float]
    min_score: float
    content_placeholder: float
    demo_placeholder: float
    sports_adjacent_keywords: Tuple[str, ...]
    lifestyle_keywords: Tuple[str, ...]
    tier_engagement_averages: Mapping[str, float]
    default_tier_engagement_average: float
    tier_order: Tuple[str, ...]


@dataclass(frozen=True)
class RateCardTables:
    """Grouping defaults and thresholds for the rate card aggregator."""
    min_sample_size: int
    default_sport: str
    default_platform: str
    default_content_type: str
    default_follower_tier: str
    default_engagement_tier: str
    default_intel_weight: float
    engagement_tier_thresholds: Tuple[Tuple[float, str], ...]   # (min_rate, tier), descending
    lowest_engagement_tier: str


# ── Defaults ─────────────────────────────────────────────────────────────────

_CONTENT_PLATFORMS = {
    'ig_post': 'instagram',
    'ig_reel': 'instagram',
    'ig_story': 'instagram',
    'ig_carousel': 'instagram',
    'tiktok_post': 'tiktok',
    'yt_short': 'youtube',
    'yt_video': 'youtube',
    'x_post': 'x',
}

# Approximate mid-market per-post rates for college athletes, by tier.
_DEFAULT_RATE_CARDS = {
    'nano': {
        'ig_post': (25, 75), 'ig_reel': (50, 150), 'ig_story': (15, 50), 'ig_carousel': (30, 100),
        'tiktok_post': (50, 150), 'yt_short': (25, 75), 'yt_video': (100, 300), 'x_post': (15, 50),
    },
    'micro': {
        'ig_post': (75, 200), 'ig_reel': (100, 350), 'ig_story': (50, 125), 'ig_carousel': (100, 275),
        'tiktok_post': (100, 400), 'yt_short': (75, 200), 'yt_video': (250, 750), 'x_post': (50, 125),
    },
    'rising': {
        'ig_post': (200, 500), 'ig_reel': (300, 800), 'ig_story': (100, 300), 'ig_carousel': (250, 650),
        'tiktok_post': (300, 900), 'yt_short': (150, 450), 'yt_video': (500, 1500), 'x_post': (100, 300),
    },
    'mid': {
        'ig_post': (500, 1250), 'ig_reel': (750, 2000), 'ig_story': (250, 700), 'ig_carousel': (600, 1500),
        'tiktok_post': (750, 2000), 'yt_short': (400, 1000), 'yt_video': (1500, 4000), 'x_post': (250, 650),
    },
    'established': {
        'ig_post': (1250, 3500), 'ig_reel': (2000, 5000), 'ig_story': (700, 1800), 'ig_carousel': (1500, 4000),
        'tiktok_post': (2000, 5500), 'yt_short': (1000, 2750), 'yt_video': (4000, 10000), 'x_post': (650, 1750),
    },
    'elite': {
        'ig_post': (3500, 10000), 'ig_reel': (5000, 15000), 'ig_story': (1800, 5000), 'ig_carousel': (4000, 12000),
        'tiktok_post': (5500, 15000), 'yt_short': (2750, 8000), 'yt_video': (10000, 30000), 'x_post': (1750, 5000),
    },
}


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'valuation': {
            'follower_tiers': [
                {'name': 'nano', 'min_followers': 0, 'base_low': 500, 'base_high': 2000},
                {'name': 'micro', 'min_followers': 1000, 'base_low': 1500, 'base_high': 5000},
                {'name': 'rising', 'min_followers': 5000, 'base_low': 4000, 'base_high': 12000},
                {'name': 'mid', 'min_followers': 15000, 'base_low': 10000, 'base_high': 35000},
                {'name': 'established', 'min_followers': 50000, 'base_low': 25000, 'base_high': 80000},
                {'name': 'elite', 'min_followers': 150000, 'base_low': 50000, 'base_high': 200000},
            ],
            'sport_multipliers': {
                'basketball': 1.3, 'football': 1.3, 'gymnastics': 1.2, 'volleyball': 1.15,
                'soccer': 1.0, 'baseball': 1.0, 'track': 0.9, 'tennis': 0.9,
                'softball': 0.85, 'swimming': 0.8, 'other': 0.75,
            },
            'default_sport_multiplier': 0.75,
            'skill_multipliers': {
                'd1_starter': 1.3, 'd1_rotation': 1.1, 'd1_bench': 0.9,
                'd2': 0.7, 'd3': 0.5, 'naia': 0.5, 'juco': 0.4,
            },
            'default_skill_multiplier': 0.5,
            'engagement_brackets': [
                {'min_rate': 6.0, 'multiplier': 1.4},
                {'min_rate': 4.0, 'multiplier': 1.2},
                {'min_rate': 2.5, 'multiplier': 1.0},
                {'min_rate': 1.0, 'multiplier': 0.8},
            ],
            'engagement_floor': 0.6,
            'default_engagement_rate': 2.5,
            'multi_platform_bonus': 0.08,
            'active_platform_min_followers': 100,
            'multiplier_min': 0.4,
            'multiplier_max': 2.0,
            'percentile_engagement_bonuses': [
                {'min_rate': 6.0, 'bonus': 10},
                {'min_rate': 4.0, 'bonus': 7},
                {'min_rate': 2.5, 'bonus': 4},
                {'min_rate': 1.0, 'bonus': 1},
            ],
            'percentile_skill_bonuses': {
                'd1_starter': 8, 'd1_rotation': 6, 'd1_bench': 3,
                'd2': 1, 'd3': 0, 'naia': 0, 'juco': -2,
            },
        },
        'matching': {
            'weights': {
                'category': 0.25,
                'content': 0.10,
                'platform': 0.15,
                'demo': 0.20,
                'engagement': 0.10,
                'availability': 0.10,
                'budget': 0.10,
            },
            'min_score': 0.30,
            'content_placeholder': 0.5,
            'demo_placeholder': 0.5,
            'sports_adjacent_keywords': [
                'fitness', 'athletic', 'sports', 'nutrition', 'supplement',
                'apparel', 'sneaker', 'shoe', 'energy', 'hydration',
            ],
            'lifestyle_keywords': [
                'lifestyle', 'fashion', 'beauty', 'food', 'beverage',
                'tech', 'gaming', 'entertainment',
            ],
            'tier_engagement_averages': {
                'nano': 5.0, 'micro': 4.0, 'rising': 3.0,
                'mid': 2.5, 'established': 2.0, 'elite': 1.5,
            },
            'default_tier_engagement_average': 3.0,
        },
        'rate_cards': {
            'min_sample_size': 3,
            'default_sport': 'other',
            'default_platform': 'instagram',
            'default_content_type': 'ig_post',
            'default_follower_tier': 'micro',
            'default_engagement_tier': 'moderate',
            'default_intel_weight': 0.5,
            'engagement_tiers': [
                {'min_rate': 4.0, 'tier': 'high'},
                {'min_rate': 2.0, 'tier': 'moderate'},
            ],
            'lowest_engagement_tier': 'low',
        },
    }


def load_market_config() -> dict:
    """Load market config from YAML, with in-memory cache and hardcoded fallback."""
    global _market_config
    if _market_config is not None:
        return _market_config

    config = _default_config()
    config_path = os.path.join(os.path.dirname(__file__), 'market_config.yaml')
    try:
        with open(config_path, 'r') as f:
            overrides = yaml.safe_load(f) or {}
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        logger.info("Config loaded from YAML (version=%s)", config.get('version', '?'))
    except Exception as e:
        logger.warning("YAML config not found (%s), using defaults", e)

    _market_config = config
    return _market_config


def reset_cache():
    """Reset the in-memory caches (useful for testing)."""
    global _market_config
    _market_config = None
    _tables_cache.clear()


# ── Table builders ───────────────────────────────────────────────────────────

def _frozen(mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


def build_market_tables(config: Optional[dict] = None) -> MarketTables:
    cfg = (config or _default_config())['valuation']
    tiers = sorted(
        (FollowerTier(t['name'], int(t['min_followers']), int(t['base_low']), int(t['base_high']))
         for t in cfg['follower_tiers']),
        key=lambda t: t.min_followers,
    )
    rate_cards = tuple(
        RateCardEntry(_CONTENT_PLATFORMS[content_type], content_type, tier, low, high)
        for tier, rates in _DEFAULT_RATE_CARDS.items()
        for content_type, (low, high) in rates.items()
    )
    return MarketTables(
        follower_tiers=tuple(tiers),
        sport_multipliers=_frozen(cfg['sport_multipliers']),
        default_sport_multiplier=cfg['default_sport_multiplier'],
        skill_multipliers=_frozen(cfg['skill_multipliers']),
        default_skill_multiplier=cfg['default_skill_multiplier'],
        engagement_brackets=tuple(
            (b['min_rate'], b['multiplier'])
            for b in sorted(cfg['engagement_brackets'], key=lambda b: b['min_rate'], reverse=True)
        ),
        engagement_floor=cfg['engagement_floor'],
        default_engagement_rate=cfg['default_engagement_rate'],
        multi_platform_bonus=cfg['multi_platform_bonus'],
        active_platform_min_followers=cfg['active_platform_min_followers'],
        multiplier_min=cfg['multiplier_min'],
        multiplier_max=cfg['multiplier_max'],
        percentile_engagement_bonuses=tuple(
            (b['min_rate'], b['bonus'])
            for b in sorted(cfg['percentile_engagement_bonuses'], key=lambda b: b['min_rate'], reverse=True)
        ),
        percentile_skill_bonuses=_frozen(cfg['percentile_skill_bonuses']),
        default_rate_cards=rate_cards,
    )


def build_matching_tables(config: Optional[dict] = None) -> MatchingTables:
    full = config or _default_config()
    cfg = full['matching']
    tier_order = tuple(t['name'] for t in sorted(
        full['valuation']['follower_tiers'], key=lambda t: t['min_followers']))
    return MatchingTables(
        weights=_frozen(cfg['weights']),
        min_score=cfg['min_score'],
        content_placeholder=cfg['content_placeholder'],
        demo_placeholder=cfg['demo_placeholder'],
        sports_adjacent_keywords=tuple(cfg['sports_adjacent_keywords']),
        lifestyle_keywords=tuple(cfg['lifestyle_keywords']),
        tier_engagement_averages=_frozen(cfg['tier_engagement_averages']),
        default_tier_engagement_average=cfg['default_tier_engagement_average'],
        tier_order=tier_order,
    )


def build_rate_card_tables(config: Optional[dict] = None) -> RateCardTables:
    cfg = (config or _default_config())['rate_cards']
    return RateCardTables(
        min_sample_size=cfg['min_sample_size'],
        default_sport=cfg['default_sport'],
        default_platform=cfg['default_platform'],
        default_content_type=cfg['default_content_type'],
        default_follower_tier=cfg['default_follower_tier'],
        default_engagement_tier=cfg['default_engagement_tier'],
        default_intel_weight=cfg['default_intel_weight'],
        engagement_tier_thresholds=tuple(
            (t['min_rate'], t['tier'])
            for t in sorted(cfg['engagement_tiers'], key=lambda t: t['min_rate'], reverse=True)
        ),
        lowest_engagement_tier=cfg['lowest_engagement_tier'],
    )


# Built from the hardcoded defaults; pure functions use these unless handed others.
DEFAULT_MARKET_TABLES = build_market_tables()
DEFAULT_MATCHING_TABLES = build_matching_tables()
DEFAULT_RATE_CARD_TABLES = build_rate_card_tables()


def _cached(key, builder):
    if key not in _tables_cache:
        _tables_cache[key] = builder(load_market_config())
    return _tables_cache[key]


def get_market_tables() -> MarketTables:
    """Tables from the loaded YAML config — what the batch jobs use."""
    return _cached('market', build_market_tables)


def get_matching_tables() -> MatchingTables:
    return _cached('matching', build_matching_tables)


def get_rate_card_tables() -> RateCardTables:
    return _cached('rate_cards', build_rate_card_tables)


def copy_default_config() -> dict:
    """Deep copy of the fallback config, for callers that want to tweak a table."""
    return copy.deepcopy(_default_config())
