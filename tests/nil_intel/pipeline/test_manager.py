"""Tests for nil_intel.pipeline.manager -- job registry, inline runs, RQ enqueue."""
import logging
import pytest
from unittest.mock import patch, MagicMock

from nil_intel.config import JOB_TIMEOUT_SECONDS
from nil_intel.pipeline.base import BatchJob, JobResult, get_job
from nil_intel.pipeline.manager import JOB_REGISTRY, launch_job, list_jobs, run_job


class _RecordingJob(BatchJob):
    name = 'recording'
    description = 'Echo params back'
    apis = ['database']

    def run(self, **params):
        return JobResult(processed=1, meta={'params': params})


class _StrictJob(BatchJob):
    name = 'strict'

    def run(self, lookback_days=180, **params):
        if lookback_days <= 0:
            raise ValueError("lookback_days must be positive")
        return JobResult()


class TestRegistry:

    def test_all_jobs_registered(self):
        assert set(JOB_REGISTRY) == {'valuation', 'rate_cards', 'matching', 'deal_intel'}

    def test_list_jobs(self):
        info = list_jobs()
        assert info['deal_intel']['apis'] == ['google_custom_search', 'database']
        assert all(entry['description'] for entry in info.values())

    def test_get_job_unknown(self):
        with pytest.raises(ValueError, match='No job registered'):
            get_job(JOB_REGISTRY, 'scoring')


class TestRunJob:

    @patch('nil_intel.pipeline.manager.JOB_REGISTRY', {'recording': _RecordingJob})
    def test_returns_result_dict(self):
        out = run_job('recording', athlete_id=7)
        assert out['job'] == 'recording'
        assert out['processed'] == 1
        assert out['meta'] == {'params': {'athlete_id': 7}}
        assert out['elapsed_seconds'] >= 0

    @patch('nil_intel.pipeline.manager.JOB_REGISTRY', {'recording': _RecordingJob})
    def test_none_params_dropped(self):
        out = run_job('recording', athlete_id=None, brand_id=3)
        assert out['meta'] == {'params': {'brand_id': 3}}

    @patch('nil_intel.pipeline.manager.JOB_REGISTRY', {'strict': _StrictJob})
    def test_parameter_errors_propagate(self):
        with pytest.raises(ValueError, match='lookback_days'):
            run_job('strict', lookback_days=0)

    @patch('nil_intel.pipeline.manager.JOB_REGISTRY', {'recording': _RecordingJob})
    def test_log_records_tagged_with_job(self, caplog):
        with caplog.at_level(logging.INFO, logger='pipeline.manager'):
            run_job('recording')
        tagged = [r for r in caplog.records if getattr(r, 'job', None) == 'recording']
        assert len(tagged) == 2

    def test_unknown_job(self):
        with pytest.raises(ValueError):
            run_job('nope')

    def test_runs_real_job_against_empty_store(self):
        out = run_job('rate_cards')
        assert out['job'] == 'rate_cards'
        assert out['meta']['groups_processed'] == 0
        assert out['failed'] == 0


class TestLaunchJob:

    @patch('nil_intel.pipeline.manager._get_queue')
    def test_enqueues_run_job(self, mock_get_queue):
        queue = MagicMock()
        queue.enqueue.return_value = MagicMock(id='rq-123')
        mock_get_queue.return_value = queue

        assert launch_job('matching', brand_id=4) == 'rq-123'
        queue.enqueue.assert_called_once_with(
            run_job, args=('matching',), kwargs={'brand_id': 4}, job_timeout=JOB_TIMEOUT_SECONDS,
        )

    @patch('nil_intel.pipeline.manager._get_queue')
    def test_unknown_job_not_enqueued(self, mock_get_queue):
        with pytest.raises(ValueError):
            launch_job('nope')
        mock_get_queue.assert_not_called()

    def test_queue_uses_shared_redis_client(self, mock_redis):
        from nil_intel.pipeline import manager
        with patch.object(manager, '_queue', None), patch('rq.Queue') as queue_cls:
            manager._get_queue()
        queue_cls.assert_called_once_with(connection=mock_redis)
