"""Tests for nil_intel.pipeline.deal_intel -- text extraction and the harvest job."""
import hashlib
from unittest.mock import patch

import pytest

from nil_intel.models.deal_intel import DealIntel, ScrapeRun
from nil_intel.pipeline.deal_intel import (
    DealIntelJob,
    build_record,
    extract_amount,
    extract_athlete_name,
    extract_brand_name,
    extract_deal_fields,
    extract_sport,
    fingerprint,
)
from nil_intel.services.search import SearchError


class TestExtractAmount:

    def test_millions(self):
        assert extract_amount('Quarterback lands $1.2 million NIL deal') == (1200000, 1200000)

    def test_range_of_plain_amounts(self):
        assert extract_amount('Deal worth between $50,000 and $75,000') == (50000, 75000)

    def test_thousands_suffix(self):
        assert extract_amount('a $25K partnership') == (25000, 25000)
        assert extract_amount('a $40 thousand partnership') == (40000, 40000)

    def test_millions_win_over_plain_amounts(self):
        assert extract_amount('$2M deal, plus $500 in gear') == (2000000, 2000000)

    def test_small_plain_amounts_ignored(self):
        assert extract_amount('tickets cost $50') == (None, None)

    def test_absurd_amounts_ignored(self):
        assert extract_amount('a $200,000,000 stadium') == (None, None)

    def test_out_of_range_suffixed_amount_not_read_as_plain(self):
        assert extract_amount('Reported $150 million NIL collective pledge') == (None, None)
        assert extract_amount('a $1500 million pledge') == (None, None)
        assert extract_amount('a $200,000k pledge') == (None, None)
        assert extract_amount('a $150 million pledge, athlete paid $5,000') == (5000, 5000)

    def test_trailing_period_after_plain_amount(self):
        assert extract_amount('The athlete was paid $5,000.') == (5000, 5000)

    def test_cents_kept(self):
        assert extract_amount('paid $1,250.50 per post') == (1250.5, 1250.5)

    def test_no_amount(self):
        assert extract_amount('Athlete signs deal') == (None, None)
        assert extract_amount('') == (None, None)


class TestExtractFields:

    HEADLINE = 'Jordan Miles signs with Nike for $50,000 basketball NIL deal'

    def test_sport(self):
        assert extract_sport('The volleyball star posted') == 'volleyball'
        assert extract_sport('A QUARTERBACK from Ohio') == 'football'
        assert extract_sport('nothing to see') is None

    def test_brand(self):
        assert extract_brand_name(self.HEADLINE) == 'Nike'
        assert extract_brand_name('no brand here') is None

    def test_athlete(self):
        assert extract_athlete_name(self.HEADLINE) == 'Jordan Miles'
        assert extract_athlete_name('athlete signs deal') is None

    def test_all_fields_full_confidence(self):
        fields = extract_deal_fields(self.HEADLINE)
        assert fields.brand_name == 'Nike'
        assert fields.athlete_name == 'Jordan Miles'
        assert fields.amount_low == 50000
        assert fields.sport == 'basketball'
        assert fields.confidence == 1.0

    def test_partial_confidence(self):
        fields = extract_deal_fields('Softball program announces $10,000 collective')
        assert fields.sport == 'softball'
        assert fields.amount_low == 10000
        assert fields.confidence == 0.5

    def test_nothing_found(self):
        fields = extract_deal_fields('Weekly NIL roundup')
        assert fields.to_dict() == {
            'brand_name': None, 'athlete_name': None, 'amount_low': None,
            'amount_high': None, 'sport': None, 'confidence': 0.0,
        }


class TestRecord:

    def test_fingerprint_is_sha256_of_url(self):
        url = 'https://news.example.com/a'
        assert fingerprint(url) == hashlib.sha256(url.encode('utf-8')).hexdigest()
        assert len(fingerprint(url)) == 64

    def test_build_record_uses_title_and_snippet(self):
        record = build_record({
            'title': 'Jordan Miles signs with Nike',
            'snippet': 'The basketball guard will earn $20,000.',
            'link': 'https://news.example.com/miles',
        })
        assert record['source_type'] == 'news'
        assert record['source_url'] == 'https://news.example.com/miles'
        assert record['fingerprint'] == fingerprint('https://news.example.com/miles')
        assert record['amount_low'] == 20000
        assert record['sport'] == 'basketball'
        assert record['reviewed'] is False

    def test_build_record_missing_fields(self):
        record = build_record({'link': 'https://news.example.com/empty'})
        assert record['source_title'] == ''
        assert record['source_snippet'] == ''
        assert record['extraction_confidence'] == 0.0


# ---------------------------------------------------------------------------
# DealIntelJob
# ---------------------------------------------------------------------------

def _item(slug, title='Jordan Miles signs with Nike for $5,000', snippet='basketball'):
    return {'title': title, 'snippet': snippet, 'link': f'https://news.example.com/{slug}'}


@pytest.fixture
def credentials():
    with patch('nil_intel.services.search.require_credentials') as mock:
        yield mock


class TestDealIntelJob:

    def test_ingests_and_audits(self, db_session, credentials):
        with patch('nil_intel.services.search.search_news', return_value=[_item('a'), _item('b')]):
            result = DealIntelJob().run(queries=['nil deal'])

        assert result.meta['records_found'] == 2
        assert result.meta['records_ingested'] == 2
        assert result.processed == 2
        rows = db_session.query(DealIntel).order_by(DealIntel.id).all()
        assert [r.source_url for r in rows] == ['https://news.example.com/a', 'https://news.example.com/b']
        assert rows[0].brand_name == 'Nike'
        assert rows[0].extraction_confidence == 1.0

        run = db_session.query(ScrapeRun).one()
        assert run.id == result.meta['scrape_run_id']
        assert run.status == 'completed'
        assert run.queries == ['nil deal']
        assert (run.records_found, run.records_ingested, run.duplicates_skipped) == (2, 2, 0)
        assert run.completed_at is not None

    def test_existing_url_skipped(self, db_session, seed, credentials):
        url = 'https://news.example.com/a'
        seed(DealIntel, source_url=url, fingerprint=fingerprint(url))

        with patch('nil_intel.services.search.search_news', return_value=[_item('a'), _item('b')]):
            result = DealIntelJob().run(queries=['nil deal'])

        assert result.meta['duplicates_skipped'] == 1
        assert result.meta['records_ingested'] == 1
        assert db_session.query(DealIntel).count() == 2

    def test_same_url_across_queries_stored_once(self, db_session, credentials):
        with patch('nil_intel.services.search.search_news', return_value=[_item('a')]):
            result = DealIntelJob().run(queries=['first', 'second'])

        assert result.meta['records_found'] == 2
        assert result.meta['records_ingested'] == 1
        assert result.meta['duplicates_skipped'] == 1
        assert db_session.query(DealIntel).count() == 1

    def test_concurrent_insert_counts_as_duplicate(self, db_session, seed, credentials):
        url = 'https://news.example.com/a'
        seed(DealIntel, source_url=url, fingerprint=fingerprint(url))

        with patch('nil_intel.services.search.search_news', return_value=[_item('a')]), \
             patch('nil_intel.services.db.deal_intel_exists', return_value=False):
            result = DealIntelJob().run(queries=['nil deal'])

        assert result.meta['duplicates_skipped'] == 1
        assert result.failed == 0
        assert db_session.query(DealIntel).count() == 1

    def test_query_error_recorded(self, db_session, credentials):
        outcomes = [SearchError('API returned 429'), [_item('a')]]

        with patch('nil_intel.services.search.search_news', side_effect=outcomes):
            result = DealIntelJob().run(queries=['broken', 'fine'])

        assert result.errors == [{'query': 'broken', 'error': 'API returned 429'}]
        assert result.meta['records_ingested'] == 1
        run = db_session.query(ScrapeRun).one()
        assert run.errors == [{'query': 'broken', 'error': 'API returned 429'}]

    def test_failed_item_does_not_abort(self, db_session, credentials):
        with patch('nil_intel.services.search.search_news', return_value=[_item('a'), _item('b')]), \
             patch('nil_intel.services.db.insert_deal_intel', side_effect=[RuntimeError('boom'), 'inserted']):
            result = DealIntelJob().run(queries=['nil deal'])

        assert result.failed == 1
        assert result.meta['records_ingested'] == 1

    def test_default_queries(self, credentials):
        from nil_intel.config import DEFAULT_SEARCH_QUERIES

        with patch('nil_intel.services.search.search_news', return_value=[]) as search_news:
            result = DealIntelJob().run()

        assert result.meta['queries_run'] == len(DEFAULT_SEARCH_QUERIES)
        assert [c.args[0] for c in search_news.call_args_list] == DEFAULT_SEARCH_QUERIES

    def test_missing_credentials_fail_before_any_work(self, db_session):
        with patch('nil_intel.services.search.GOOGLE_CUSTOM_SEARCH_KEY', None), \
             patch('nil_intel.services.search.search_news') as search_news:
            with pytest.raises(ValueError, match='GOOGLE_CUSTOM_SEARCH_KEY'):
                DealIntelJob().run(queries=['nil deal'])

        search_news.assert_not_called()
        assert db_session.query(ScrapeRun).count() == 0
