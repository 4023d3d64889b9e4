"""
Persistence helpers — every store read and write the batch jobs make.

Each helper opens its own session. Reads hand back plain dicts so nothing
lazy-loads after the session closes. Writes are wrapped in try/except so a
failing unit (one athlete, one rate card group, one match chunk) is logged
and reported to the caller instead of aborting the job.
"""
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from nil_intel.config import DEAL_OPEN_STATUSES
from nil_intel.database import get_session, utcnow
from nil_intel.models.athlete import Athlete, AthleteSocialProfile
from nil_intel.models.brand import Brand, BrandSignal, BrandWatchlist
from nil_intel.models.deal import Deal
from nil_intel.models.deal_intel import DealIntel, ScrapeRun
from nil_intel.models.match import Match, allows_automated_write
from nil_intel.models.rate_card import RateCard
from nil_intel.models.valuation import AthleteValuation
from nil_intel.pipeline.market_config import RateCardEntry

logger = logging.getLogger('services.db')


# ── Athletes ─────────────────────────────────────────────────────────────────

def _athlete_dict(a):
    return {
        'id': a.id,
        'full_name': a.full_name or '',
        'sport': a.sport,
        'skill_level': a.skill_level,
        'status': a.status,
        'tags': list(a.tags or []),
        'engagement_rate': a.engagement_rate,
        'valuation_tier': a.valuation_tier,
    }


def load_athletes(athlete_id=None, limit=None):
    """
    One athlete by id (any status), or every active athlete ordered by id.

    Status filtering for the single-id case is left to the caller, so the
    matching engine can still apply its paused/archived hard filter.
    """
    session = get_session()
    try:
        query = session.query(Athlete)
        if athlete_id is not None:
            query = query.filter(Athlete.id == athlete_id)
        else:
            query = query.filter(Athlete.status == 'active').order_by(Athlete.id)
            if limit:
                query = query.limit(limit)
        return [_athlete_dict(a) for a in query.all()]
    finally:
        session.close()


def load_social_profiles(athlete_ids):
    """Social profiles grouped by athlete id: {athlete_id: [{platform, handle, followers, engagement_rate}]}."""
    if not athlete_ids:
        return {}
    session = get_session()
    try:
        rows = (
            session.query(AthleteSocialProfile)
            .filter(AthleteSocialProfile.athlete_id.in_(list(athlete_ids)))
            .order_by(AthleteSocialProfile.athlete_id, AthleteSocialProfile.id)
            .all()
        )
        profiles = {}
        for sp in rows:
            profiles.setdefault(sp.athlete_id, []).append({
                'platform': sp.platform,
                'handle': sp.handle or '',
                'followers': sp.followers or 0,
                'engagement_rate': sp.engagement_rate,
            })
        return profiles
    finally:
        session.close()


def load_latest_valuation_tiers(athlete_ids):
    """Follower tier of each athlete's newest stored valuation snapshot."""
    if not athlete_ids:
        return {}
    session = get_session()
    try:
        rows = (
            session.query(AthleteValuation.athlete_id, AthleteValuation.follower_tier)
            .filter(AthleteValuation.athlete_id.in_(list(athlete_ids)))
            .order_by(AthleteValuation.athlete_id, AthleteValuation.as_of.desc())
            .all()
        )
        tiers = {}
        for athlete_id, tier in rows:
            tiers.setdefault(athlete_id, tier)
        return tiers
    finally:
        session.close()


# ── Brands ───────────────────────────────────────────────────────────────────

def load_brands(brand_ids):
    if not brand_ids:
        return []
    session = get_session()
    try:
        rows = session.query(Brand).filter(Brand.id.in_(list(brand_ids))).order_by(Brand.id).all()
        return [{
            'id': b.id,
            'name': b.name,
            'category': b.category,
            'status': b.status,
            'budget_tier': b.budget_tier,
            'signal_platforms': list(b.signal_platforms or []),
        } for b in rows]
    finally:
        session.close()


def load_candidate_brand_ids(since):
    """Brands with a signal detected at or after `since`, plus active watchlist brands. Sorted, deduplicated."""
    session = get_session()
    try:
        signal_ids = {
            row[0] for row in
            session.query(BrandSignal.brand_id)
            .filter(BrandSignal.brand_id.isnot(None), BrandSignal.detected_at >= since)
            .distinct()
            .all()
        }
        watch_ids = {
            row[0] for row in
            session.query(BrandWatchlist.brand_id)
            .filter(BrandWatchlist.active.is_(True))
            .distinct()
            .all()
        }
        return sorted(signal_ids | watch_ids)
    finally:
        session.close()


# ── Deals + matches ──────────────────────────────────────────────────────────

def load_open_deals(athlete_ids):
    """Active/pending deals for the given athletes, across all brands."""
    if not athlete_ids:
        return []
    session = get_session()
    try:
        rows = (
            session.query(Deal.athlete_id, Deal.brand_id, Deal.exclusivity)
            .filter(Deal.athlete_id.in_(list(athlete_ids)), Deal.status.in_(DEAL_OPEN_STATUSES))
            .all()
        )
        return [
            {'athlete_id': a_id, 'brand_id': b_id, 'exclusivity': bool(exclusive)}
            for a_id, b_id, exclusive in rows
        ]
    finally:
        session.close()


def load_match_statuses(athlete_ids, brand_ids):
    """Existing match status per (athlete_id, brand_id) pair."""
    if not athlete_ids or not brand_ids:
        return {}
    session = get_session()
    try:
        rows = (
            session.query(Match.athlete_id, Match.brand_id, Match.status)
            .filter(Match.athlete_id.in_(list(athlete_ids)), Match.brand_id.in_(list(brand_ids)))
            .all()
        )
        return {(a_id, b_id): status for a_id, b_id, status in rows}
    finally:
        session.close()


def upsert_matches(rows):
    """
    Upsert one chunk of scored pairs in a single transaction.

    Each row is {athlete_id, brand_id, match_score, score_breakdown, expires_at}.
    Existing rows are re-read inside the transaction and any that a human has
    moved into a protected status are left untouched.

    Returns {'upserted': int, 'protected': int, 'error': str | None}.
    """
    result = {'upserted': 0, 'protected': 0, 'error': None}
    if not rows:
        return result

    session = get_session()
    try:
        athlete_ids = {r['athlete_id'] for r in rows}
        brand_ids = {r['brand_id'] for r in rows}
        existing = {
            (m.athlete_id, m.brand_id): m for m in
            session.query(Match)
            .filter(Match.athlete_id.in_(athlete_ids), Match.brand_id.in_(brand_ids))
            .all()
        }

        now = utcnow()
        for row in rows:
            match = existing.get((row['athlete_id'], row['brand_id']))
            if not allows_automated_write(match.status if match else None):
                result['protected'] += 1
                continue

            if match is None:
                match = Match(athlete_id=row['athlete_id'], brand_id=row['brand_id'])
                session.add(match)
            match.match_score = row['match_score']
            match.score_breakdown = row['score_breakdown']
            match.status = 'new'
            match.expires_at = row['expires_at']
            match.updated_at = now
            result['upserted'] += 1

        session.commit()
    except Exception as e:
        session.rollback()
        logger.error("Failed to upsert match chunk (%d rows)", len(rows), exc_info=True)
        result = {'upserted': 0, 'protected': 0, 'error': str(e)}
    finally:
        session.close()
    return result


# ── Rate cards ───────────────────────────────────────────────────────────────

def load_deal_intel_observations(since):
    """Deal intel rows with an amount, created at or after `since`."""
    session = get_session()
    try:
        rows = (
            session.query(DealIntel)
            .filter(DealIntel.amount_low.isnot(None), DealIntel.created_at >= since)
            .order_by(DealIntel.id)
            .all()
        )
        return [{
            'id': di.id,
            'sport': di.sport,
            'platform': di.platform,
            'content_type': di.content_type,
            'amount_low': di.amount_low,
            'amount_high': di.amount_high,
            'extraction_confidence': di.extraction_confidence,
        } for di in rows]
    finally:
        session.close()


def load_confirmed_deal_observations(since):
    """Deals with a value, created at or after `since`, joined to the athlete's tier and engagement."""
    session = get_session()
    try:
        rows = (
            session.query(Deal, Athlete.valuation_tier, Athlete.engagement_rate)
            .outerjoin(Athlete, Athlete.id == Deal.athlete_id)
            .filter(Deal.deal_value.isnot(None), Deal.created_at >= since)
            .order_by(Deal.id)
            .all()
        )
        return [{
            'id': deal.id,
            'deal_value': deal.deal_value,
            'sport': deal.sport,
            'platform': deal.platform,
            'content_type': deal.content_type,
            'athlete_valuation_tier': tier,
            'athlete_engagement_rate': engagement_rate,
        } for deal, tier, engagement_rate in rows]
    finally:
        session.close()


def upsert_rate_card(group_key, rate_low, rate_median, rate_high, sample_size):
    """INSERT or UPDATE the rate card for one group. Returns True on success."""
    sport, platform, content_type, follower_tier, engagement_tier = group_key
    session = get_session()
    try:
        card = session.query(RateCard).filter_by(
            sport=sport,
            platform=platform,
            content_type=content_type,
            follower_tier=follower_tier,
            engagement_tier=engagement_tier,
        ).first()
        if card is None:
            card = RateCard(
                sport=sport,
                platform=platform,
                content_type=content_type,
                follower_tier=follower_tier,
                engagement_tier=engagement_tier,
            )
            session.add(card)
        card.rate_low = rate_low
        card.rate_median = rate_median
        card.rate_high = rate_high
        card.sample_size = sample_size
        card.updated_at = utcnow()
        session.commit()
        return True
    except Exception:
        session.rollback()
        logger.error("Failed to upsert rate card %s", group_key, exc_info=True)
        return False
    finally:
        session.close()


def load_rate_cards_for_sport(sport):
    """Aggregated rate cards for a sport, as RateCardEntry values."""
    session = get_session()
    try:
        rows = (
            session.query(RateCard)
            .filter(RateCard.sport == sport)
            .order_by(RateCard.id)
            .all()
        )
        return [
            RateCardEntry(c.platform, c.content_type, c.follower_tier, c.rate_low, c.rate_high)
            for c in rows
        ]
    finally:
        session.close()


# ── Valuations ───────────────────────────────────────────────────────────────

def find_comparable_deals(sport, limit):
    """Newest deal intel records for the same sport that carry an amount."""
    session = get_session()
    try:
        rows = (
            session.query(DealIntel)
            .filter(DealIntel.sport == sport, DealIntel.amount_low.isnot(None))
            .order_by(DealIntel.created_at.desc(), DealIntel.id.desc())
            .limit(limit)
            .all()
        )
        return [{
            'id': di.id,
            'brand_name': di.brand_name,
            'amount_low': di.amount_low,
            'amount_high': di.amount_high,
            'sport': di.sport,
            'verification_score': di.extraction_confidence,
            'created_at': di.created_at,
        } for di in rows]
    finally:
        session.close()


def persist_valuation(athlete_id, as_of, fields):
    """
    Upsert one valuation snapshot on (athlete_id, as_of).

    Re-running on the same day overwrites that day's row; earlier days are
    never touched. Returns True on success.
    """
    session = get_session()
    try:
        snapshot = session.query(AthleteValuation).filter_by(
            athlete_id=athlete_id, as_of=as_of,
        ).first()
        if snapshot is None:
            snapshot = AthleteValuation(athlete_id=athlete_id, as_of=as_of)
            session.add(snapshot)
        snapshot.annual_low = fields['annual_low']
        snapshot.annual_high = fields['annual_high']
        snapshot.follower_tier = fields['follower_tier']
        snapshot.percentile = fields['percentile']
        snapshot.confidence = fields['confidence']
        snapshot.comparable_count = fields['comparable_count']
        snapshot.valuation_data = fields['valuation_data']
        snapshot.updated_at = utcnow()
        session.commit()
        return True
    except Exception:
        session.rollback()
        logger.error("Failed to persist valuation for athlete %s", athlete_id, exc_info=True)
        return False
    finally:
        session.close()


# ── Deal intel ───────────────────────────────────────────────────────────────

def deal_intel_exists(source_url, fingerprint):
    session = get_session()
    try:
        count = (
            session.query(func.count(DealIntel.id))
            .filter((DealIntel.source_url == source_url) | (DealIntel.fingerprint == fingerprint))
            .scalar()
        )
        return bool(count)
    finally:
        session.close()


def insert_deal_intel(record):
    """
    Insert one deal intel candidate.

    Returns 'inserted', or 'duplicate' when a concurrent run already stored
    the same URL/fingerprint (unique constraint). Other errors propagate.
    """
    session = get_session()
    try:
        session.add(DealIntel(**record))
        session.commit()
        return 'inserted'
    except IntegrityError:
        session.rollback()
        logger.info("Deal intel already stored for %s", record.get('source_url'))
        return 'duplicate'
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_scrape_run(queries):
    """INSERT the audit row for a harvest, status=running. Returns its id."""
    session = get_session()
    try:
        run = ScrapeRun(status='running', queries=list(queries), started_at=utcnow())
        session.add(run)
        session.commit()
        return run.id
    finally:
        session.close()


def complete_scrape_run(run_id, records_found, records_ingested, duplicates_skipped, errors):
    session = get_session()
    try:
        run = session.get(ScrapeRun, run_id)
        if run is None:
            logger.warning("Scrape run %s not found, cannot complete", run_id)
            return
        run.status = 'completed'
        run.records_found = records_found
        run.records_ingested = records_ingested
        run.duplicates_skipped = duplicates_skipped
        run.errors = errors or None
        run.completed_at = utcnow()
        session.commit()
    except Exception:
        session.rollback()
        logger.error("Failed to complete scrape run %s", run_id, exc_info=True)
    finally:
        session.close()
