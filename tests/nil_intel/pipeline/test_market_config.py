"""Tests for nil_intel.pipeline.market_config -- YAML loading and table building."""
from unittest.mock import patch, mock_open

import pytest

from nil_intel.pipeline import market_config
from nil_intel.pipeline.market_config import (
    DEFAULT_MARKET_TABLES,
    DEFAULT_MATCHING_TABLES,
    DEFAULT_RATE_CARD_TABLES,
    build_market_tables,
    build_matching_tables,
    copy_default_config,
    get_market_tables,
    get_matching_tables,
    get_rate_card_tables,
    load_market_config,
)


class TestLoadMarketConfig:

    def test_loads_bundled_yaml(self):
        config = load_market_config()
        assert config['version'] == '2026-10'
        assert config['matching']['min_score'] == 0.30
        # keys left out of the YAML section keep their defaults
        assert config['matching']['content_placeholder'] == 0.5
        assert config['rate_cards']['default_intel_weight'] == 0.5

    def test_cached(self):
        assert load_market_config() is load_market_config()

    def test_missing_yaml_falls_back_to_defaults(self):
        with patch('builtins.open', side_effect=FileNotFoundError('market_config.yaml')):
            config = load_market_config()
        assert config['version'] == 'default'
        assert config['valuation']['sport_multipliers']['basketball'] == 1.3

    def test_partial_yaml_overrides_one_section(self):
        yaml_text = "version: test\nmatching:\n  min_score: 0.5\n"
        with patch('builtins.open', mock_open(read_data=yaml_text)):
            tables = get_matching_tables()
        assert tables.min_score == 0.5
        assert tables.weights['category'] == 0.25
        assert get_market_tables().sport_multipliers['football'] == 1.3

    def test_reset_cache(self):
        first = get_rate_card_tables()
        market_config.reset_cache()
        assert get_rate_card_tables() is not first


class TestTables:

    def test_tiers_sorted_by_min_followers(self):
        config = copy_default_config()
        config['valuation']['follower_tiers'].reverse()
        tables = build_market_tables(config)
        assert [t.name for t in tables.follower_tiers] == [
            'nano', 'micro', 'rising', 'mid', 'established', 'elite',
        ]

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_MARKET_TABLES.sport_multipliers['curling'] = 2.0
        with pytest.raises(AttributeError):
            DEFAULT_MATCHING_TABLES.min_score = 0.0

    def test_copy_default_config_is_independent(self):
        config = copy_default_config()
        config['matching']['weights']['category'] = 0.0
        assert DEFAULT_MATCHING_TABLES.weights['category'] == 0.25
        assert build_matching_tables(config).weights['category'] == 0.0

    def test_tier_order_follows_follower_tiers(self):
        assert DEFAULT_MATCHING_TABLES.tier_order[0] == 'nano'
        assert DEFAULT_MATCHING_TABLES.tier_order[-1] == 'elite'

    def test_default_rate_cards_cover_every_tier_and_content_type(self):
        cards = DEFAULT_MARKET_TABLES.default_rate_cards
        assert len(cards) == 48
        assert all(card.rate_low < card.rate_high for card in cards)
        assert {c.platform for c in cards if c.content_type.startswith('ig_')} == {'instagram'}

    def test_engagement_tier_thresholds_descending(self):
        rates = [rate for rate, _ in DEFAULT_RATE_CARD_TABLES.engagement_tier_thresholds]
        assert rates == sorted(rates, reverse=True)
