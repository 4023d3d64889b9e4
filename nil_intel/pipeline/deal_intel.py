"""
DEAL INTEL — news search results → deduplicated candidate deal records.

extract_deal_fields() is the pure text → ExtractedFields step; it is
best-effort regex work and only its shape is guaranteed (nullable fields,
confidence = fields found / 4). DealIntelJob handles search, dedup,
storage and the per-run audit row.
"""
import hashlib
import logging
import re
from dataclasses import dataclass, asdict
from typing import Dict, List, Any, Optional, Tuple

from nil_intel.config import DEFAULT_SEARCH_QUERIES
from nil_intel.pipeline.base import BatchJob, JobResult
from nil_intel.services import db, search

logger = logging.getLogger('pipeline.deal_intel')


MAX_AMOUNT = 100_000_000
MIN_PLAIN_AMOUNT = 100

_AMOUNT = r'\$\s*([\d,]+(?:\.\d{1,2})?)'
_SUFFIX = r'\s*(?:million|mil|m|thousand|k)\b'

# (pattern, scale, minimum). Passes run in order; the first that finds anything wins.
# The plain pass never matches a suffixed amount, whole or truncated ("$1500 million" is not $150).
AMOUNT_PASSES = (
    (re.compile(_AMOUNT + r'\s*(?:million|mil|m)\b', re.IGNORECASE), 1_000_000, 0),
    (re.compile(_AMOUNT + r'\s*(?:thousand|k)\b', re.IGNORECASE), 1_000, 0),
    (re.compile(_AMOUNT + r'(?!\d|[.,]\d|' + _SUFFIX + r')', re.IGNORECASE), 1, MIN_PLAIN_AMOUNT),
)

SPORT_KEYWORDS = (
    ('basketball', ('basketball', 'hoops', 'ncaa basketball')),
    ('football', ('football', 'quarterback', 'wide receiver', 'ncaa football')),
    ('volleyball', ('volleyball',)),
    ('gymnastics', ('gymnastics', 'gymnast')),
    ('soccer', ('soccer',)),
    ('softball', ('softball',)),
    ('baseball', ('baseball',)),
    ('swimming', ('swimming', 'swimmer')),
    ('track', ('track', 'track and field', 'sprinter')),
    ('tennis', ('tennis',)),
)

BRAND_RE = re.compile(
    r"(?:with|signs? with|partners? with|by)\s+([A-Z][A-Za-z\s&'.]+?)"
    r"(?:\s+(?:for|in|on|to|NIL|deal|partnership|signs?)|\.|,|$)"
)

ATHLETE_RE = re.compile(
    r'(?:athlete|star|player|(\b[A-Z][a-z]+\s[A-Z][a-z]+\b))(?:\s+(?:signs?|lands?|secures?|gets?))'
)


@dataclass
class ExtractedFields:
    brand_name: Optional[str] = None
    athlete_name: Optional[str] = None
    amount_low: Optional[float] = None
    amount_high: Optional[float] = None
    sport: Optional[str] = None
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_amount(raw: str) -> Optional[float]:
    digits = raw.replace(',', '')
    if not digits:
        return None
    try:
        return float(digits)
    except ValueError:
        return None


def extract_amount(text: str) -> Tuple[Optional[float], Optional[float]]:
    """(low, high) dollar amounts, or (None, None). Millions beat thousands beat plain amounts."""
    for pattern, scale, minimum in AMOUNT_PASSES:
        amounts = []
        for match in pattern.finditer(text or ''):
            value = _parse_amount(match.group(1))
            if value is None:
                continue
            value *= scale
            above_floor = value >= minimum if minimum else value > 0
            if above_floor and value < MAX_AMOUNT:
                amounts.append(round(value, 2))
        if amounts:
            return min(amounts), max(amounts)
    return None, None


def extract_sport(text: str) -> Optional[str]:
    lower = (text or '').lower()
    for sport, keywords in SPORT_KEYWORDS:
        if any(kw in lower for kw in keywords):
            return sport
    return None


def extract_brand_name(text: str) -> Optional[str]:
    match = BRAND_RE.search(text or '')
    if not match:
        return None
    return match.group(1).strip() or None


def extract_athlete_name(text: str) -> Optional[str]:
    match = ATHLETE_RE.search(text or '')
    if not match:
        return None
    return match.group(1) or None


def extract_deal_fields(text: str) -> ExtractedFields:
    low, high = extract_amount(text)
    fields = ExtractedFields(
        brand_name=extract_brand_name(text),
        athlete_name=extract_athlete_name(text),
        amount_low=low,
        amount_high=high,
        sport=extract_sport(text),
    )
    found = sum(1 for v in (fields.brand_name, fields.athlete_name, fields.amount_low, fields.sport) if v)
    fields.confidence = min(1.0, found / 4)
    return fields


def fingerprint(source_url: str) -> str:
    """SHA-256 hex digest of the source URL."""
    return hashlib.sha256((source_url or '').encode('utf-8')).hexdigest()


def build_record(item: Dict[str, Any]) -> Dict[str, Any]:
    """DealIntel column values for one search result item."""
    title = item.get('title') or ''
    snippet = item.get('snippet') or ''
    source_url = item.get('link') or ''
    fields = extract_deal_fields(f"{title} {snippet}")
    return {
        'source_type': 'news',
        'source_url': source_url,
        'source_title': title,
        'source_snippet': snippet,
        'fingerprint': fingerprint(source_url),
        'brand_name': fields.brand_name,
        'athlete_name': fields.athlete_name,
        'amount_low': fields.amount_low,
        'amount_high': fields.amount_high,
        'sport': fields.sport,
        'extraction_confidence': fields.confidence,
        'reviewed': False,
    }


class DealIntelJob(BatchJob):
    name = 'deal_intel'
    description = 'Harvest NIL deal news via web search into deal intel candidates'
    apis = ['google_custom_search', 'database']

    def run(self, queries: Optional[List[str]] = None, **params) -> JobResult:
        search.require_credentials()
        queries = list(queries) if queries else list(DEFAULT_SEARCH_QUERIES)

        run_id = db.create_scrape_run(queries)
        result = JobResult(meta={
            'scrape_run_id': run_id,
            'queries_run': len(queries),
            'records_found': 0,
            'records_ingested': 0,
            'duplicates_skipped': 0,
        })
        meta = result.meta

        for query in queries:
            try:
                items = search.search_news(query)
            except Exception as e:
                logger.error("Query %r failed: %s", query, e)
                result.errors.append({'query': query, 'error': str(e)})
                continue

            meta['records_found'] += len(items)
            for item in items:
                try:
                    outcome = self._ingest(item)
                except Exception:
                    logger.error("Failed to ingest search result %s", item.get('link'), exc_info=True)
                    result.failed += 1
                    continue
                if outcome == 'inserted':
                    meta['records_ingested'] += 1
                else:
                    meta['duplicates_skipped'] += 1

        result.processed = meta['records_ingested']
        result.skipped = meta['duplicates_skipped']

        db.complete_scrape_run(
            run_id,
            records_found=meta['records_found'],
            records_ingested=meta['records_ingested'],
            duplicates_skipped=meta['duplicates_skipped'],
            errors=result.errors,
        )
        logger.info(
            "Deal intel harvest complete: %d found, %d new, %d duplicates, %d query errors",
            meta['records_found'], meta['records_ingested'], meta['duplicates_skipped'], len(result.errors),
        )
        return result

    def _ingest(self, item):
        source_url = item.get('link') or ''
        if db.deal_intel_exists(source_url, fingerprint(source_url)):
            return 'duplicate'
        return db.insert_deal_intel(build_record(item))
