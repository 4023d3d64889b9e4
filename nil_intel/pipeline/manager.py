"""
Job Manager — runs the market-intelligence batch jobs.

  valuation   → ValuationSnapshotJob
  rate_cards  → RateCardJob
  matching    → MatchingJob
  deal_intel  → DealIntelJob

run_job() executes synchronously (CLI, scheduler hooks, RQ worker).
launch_job() enqueues run_job on the RQ queue and returns the RQ job id.
Jobs are independent; nothing here chains one into another.
"""
import logging
import time
from typing import Dict, Type

from nil_intel.config import JOB_TIMEOUT_SECONDS
from nil_intel.pipeline.base import BatchJob, get_job, get_jobs_info
from nil_intel.pipeline.deal_intel import DealIntelJob
from nil_intel.pipeline.matching import MatchingJob
from nil_intel.pipeline.rate_cards import RateCardJob
from nil_intel.pipeline.valuation import ValuationSnapshotJob

logger = logging.getLogger('pipeline.manager')


JOB_REGISTRY: Dict[str, Type[BatchJob]] = {
    ValuationSnapshotJob.name: ValuationSnapshotJob,
    RateCardJob.name: RateCardJob,
    MatchingJob.name: MatchingJob,
    DealIntelJob.name: DealIntelJob,
}


# ── Lazy RQ queue (no Redis connection until something is enqueued) ─────────

_queue = None

def _get_queue():
    global _queue
    if _queue is None:
        from nil_intel.extensions import redis_client
        from rq import Queue
        _queue = Queue(connection=redis_client)
    return _queue


# ── Public API ────────────────────────────────────────────────────────────────

def list_jobs() -> dict:
    return get_jobs_info(JOB_REGISTRY)


def run_job(name: str, **params) -> dict:
    """
    Run one job to completion and return its JobResult as a dict.

    Unknown job names and bad parameters raise ValueError before any work.
    Per-unit failures inside the job are reported in the result, not raised.
    """
    job = get_job(JOB_REGISTRY, name)
    params = {k: v for k, v in params.items() if v is not None}

    logger.info("Starting job '%s' params=%s", name, params, extra={'job': name})
    started = time.time()
    result = job.run(**params)
    elapsed = time.time() - started

    output = result.to_dict()
    output['job'] = name
    output['elapsed_seconds'] = round(elapsed, 2)
    logger.info(
        "Job '%s' finished in %.1fs: processed=%d failed=%d skipped=%d errors=%d",
        name, elapsed, result.processed, result.failed, result.skipped, len(result.errors),
        extra={'job': name},
    )
    return output


def launch_job(name: str, **params) -> str:
    """Enqueue run_job as a background RQ job. Returns the RQ job id."""
    if name not in JOB_REGISTRY:
        raise ValueError(f"No job registered as '{name}'. Available: {sorted(JOB_REGISTRY)}")

    rq_job = _get_queue().enqueue(run_job, args=(name,), kwargs=params, job_timeout=JOB_TIMEOUT_SECONDS)
    logger.info("Enqueued job '%s' as %s", name, rq_job.id)
    return rq_job.id
