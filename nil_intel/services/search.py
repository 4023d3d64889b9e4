"""
Google Custom Search JSON API client — news results for deal intel harvesting.
"""
import logging
from typing import Dict, List, Any

import requests

from nil_intel.config import GOOGLE_CUSTOM_SEARCH_KEY, GOOGLE_SEARCH_ENGINE_ID, GOOGLE_SEARCH_URL

logger = logging.getLogger('services.search')


class SearchError(Exception):
    """A search request did not return usable results."""


def require_credentials():
    """Raise before any work if the search API is not configured."""
    missing = [
        name for name, value in (
            ('GOOGLE_CUSTOM_SEARCH_KEY', GOOGLE_CUSTOM_SEARCH_KEY),
            ('GOOGLE_SEARCH_ENGINE_ID', GOOGLE_SEARCH_ENGINE_ID),
        )
        if not value
    ]
    if missing:
        raise ValueError(f"Search API not configured, missing: {', '.join(missing)}")


def search_news(query: str, num: int = 10, date_restrict: str = 'd7') -> List[Dict[str, Any]]:
    """
    Run one search query. Returns [{title, snippet, link}].

    Raises SearchError on a non-200 response or a transport failure.
    """
    params = {
        'key': GOOGLE_CUSTOM_SEARCH_KEY,
        'cx': GOOGLE_SEARCH_ENGINE_ID,
        'q': query,
        'num': num,
        'dateRestrict': date_restrict,
    }
    try:
        response = requests.get(GOOGLE_SEARCH_URL, params=params, timeout=30)
    except requests.exceptions.RequestException as e:
        logger.error("Search request failed for %r: %s", query, e)
        raise SearchError(str(e)) from e

    if response.status_code != 200:
        logger.error("Search API returned %d for %r: %s", response.status_code, query, response.text[:500])
        raise SearchError(f"API returned {response.status_code}")

    items = response.json().get('items') or []
    logger.debug("Search %r returned %d items", query, len(items))
    return [
        {
            'title': item.get('title') or '',
            'snippet': item.get('snippet') or '',
            'link': item.get('link') or '',
        }
        for item in items
    ]
