"""Tests for nil_intel.services.search -- Google Custom Search client."""
import pytest
import requests
from unittest.mock import patch, MagicMock

from nil_intel.services.search import SearchError, require_credentials, search_news


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.text = 'rate limited'
    return resp


@pytest.fixture
def configured():
    with patch('nil_intel.services.search.GOOGLE_CUSTOM_SEARCH_KEY', 'key-123'), \
         patch('nil_intel.services.search.GOOGLE_SEARCH_ENGINE_ID', 'cx-456'):
        yield


class TestRequireCredentials:

    def test_configured(self, configured):
        require_credentials()

    def test_missing_engine_id(self, configured):
        with patch('nil_intel.services.search.GOOGLE_SEARCH_ENGINE_ID', ''):
            with pytest.raises(ValueError, match='GOOGLE_SEARCH_ENGINE_ID'):
                require_credentials()


class TestSearchNews:

    @patch('nil_intel.services.search.requests.get')
    def test_params_and_items(self, mock_get, configured):
        mock_get.return_value = _response(payload={'items': [
            {'title': 'Deal', 'snippet': 'A $5,000 deal', 'link': 'https://x.test/1', 'kind': 'customsearch#result'},
            {'link': 'https://x.test/2'},
        ]})

        items = search_news('NIL deal', num=5)

        assert items == [
            {'title': 'Deal', 'snippet': 'A $5,000 deal', 'link': 'https://x.test/1'},
            {'title': '', 'snippet': '', 'link': 'https://x.test/2'},
        ]
        params = mock_get.call_args.kwargs['params']
        assert params == {'key': 'key-123', 'cx': 'cx-456', 'q': 'NIL deal', 'num': 5, 'dateRestrict': 'd7'}
        assert mock_get.call_args.kwargs['timeout'] == 30

    @patch('nil_intel.services.search.requests.get')
    def test_no_items(self, mock_get, configured):
        mock_get.return_value = _response(payload={'searchInformation': {'totalResults': '0'}})
        assert search_news('NIL deal') == []

    @patch('nil_intel.services.search.requests.get')
    def test_non_200_raises(self, mock_get, configured):
        mock_get.return_value = _response(status_code=429)
        with pytest.raises(SearchError, match='API returned 429'):
            search_news('NIL deal')

    @patch('nil_intel.services.search.requests.get')
    def test_transport_error_raises(self, mock_get, configured):
        mock_get.side_effect = requests.exceptions.ConnectionError('connection reset')
        with pytest.raises(SearchError, match='connection reset'):
            search_news('NIL deal')
