"""Tests for nil_intel.logging_config."""
import json
import logging
import os
from unittest.mock import patch

import pytest

from nil_intel.logging_config import configure_logging, JSONFormatter


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    level, handlers = root.level, root.handlers[:]
    yield
    root.setLevel(level)
    root.handlers = handlers


class TestConfigureLogging:

    def test_defaults_to_info(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('LOG_LEVEL', None)
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    @pytest.mark.parametrize('value,level', [
        ('DEBUG', logging.DEBUG),
        ('warning', logging.WARNING),
        ('bogus', logging.INFO),
    ])
    def test_level_from_env(self, value, level):
        with patch.dict(os.environ, {'LOG_LEVEL': value}):
            configure_logging()
        assert logging.getLogger().level == level

    def test_text_format(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text', 'LOG_LEVEL': 'INFO'}):
            configure_logging()
        logging.getLogger('pipeline.matching').info("Matching complete: %d upserted", 3)
        err = capsys.readouterr().err
        assert 'pipeline.matching' in err
        assert 'Matching complete: 3 upserted' in err

    def test_json_format_with_exception(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json', 'LOG_LEVEL': 'INFO'}):
            configure_logging()
        try:
            raise RuntimeError("deadlock detected")
        except RuntimeError:
            logging.getLogger('services.db').error("Failed to upsert match chunk", exc_info=True)

        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed['level'] == 'ERROR'
        assert parsed['logger'] == 'services.db'
        assert 'RuntimeError' in parsed['exception']

    def test_noisy_loggers_quieted(self):
        configure_logging()
        for name in ['urllib3', 'requests', 'rq.worker', 'sqlalchemy.engine']:
            assert logging.getLogger(name).level == logging.WARNING

    def test_repeated_calls_do_not_stack_handlers(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1


class TestJSONFormatter:

    def test_plain_record(self):
        record = logging.LogRecord(
            name='pipeline.valuation', level=logging.WARNING, pathname='', lineno=0,
            msg='athlete %s skipped', args=(7,), exc_info=None,
        )
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed['message'] == 'athlete 7 skipped'
        assert parsed['level'] == 'WARNING'
        assert 'exception' not in parsed

    def test_job_name_from_extra(self):
        record = logging.LogRecord(
            name='pipeline.manager', level=logging.INFO, pathname='', lineno=0,
            msg='Starting job', args=(), exc_info=None,
        )
        record.job = 'rate_cards'
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed['job'] == 'rate_cards'
        assert parsed['logger'] == 'pipeline.manager'

    def test_no_job_field_without_extra(self):
        record = logging.LogRecord(
            name='services.db', level=logging.INFO, pathname='', lineno=0,
            msg='ok', args=(), exc_info=None,
        )
        assert 'job' not in json.loads(JSONFormatter().format(record))
