"""
Log setup for the batch jobs.

init_app() calls configure_logging() once, before any job runs. Everything
goes to stderr so a job's JSON result on stdout stays machine-readable.

  LOG_LEVEL   level name, INFO when unset or unknown
  LOG_FORMAT  "text" (default) or "json", one object per line

Records logged with extra={'job': ...} carry the job name into JSON output.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Dropped to WARNING: they log every request or statement at INFO
QUIET_LOGGERS = ('urllib3', 'requests', 'rq.worker', 'sqlalchemy.engine')


class JSONFormatter(logging.Formatter):

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        job = getattr(record, 'job', None)
        if job:
            entry['job'] = job
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _level_from_env():
    return getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)


def _formatter_from_env():
    if os.getenv('LOG_FORMAT', 'text').lower() == 'json':
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def configure_logging():
    level = _level_from_env()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_formatter_from_env())

    root = logging.getLogger()
    root.setLevel(level)
    # Safe to call twice: one handler, never two
    root.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
