#!/usr/bin/env python3
"""
Run one market-intelligence job from the command line.

Usage:
    python scripts/run_job.py valuation                      # snapshot every active athlete
    python scripts/run_job.py valuation --athlete-id 42
    python scripts/run_job.py rate_cards --lookback-days 90
    python scripts/run_job.py matching --brand-id 7 --batch-size 50
    python scripts/run_job.py deal_intel --query "NIL deal basketball" --query "NIL signing"
    python scripts/run_job.py matching --enqueue             # hand off to the RQ worker
    python scripts/run_job.py --list

Requires: DATABASE_URL set (or defaults to sqlite:///local.db); Redis only with --enqueue.
"""
import sys
import os
import json
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from nil_intel import init_app
from nil_intel.pipeline.manager import JOB_REGISTRY, launch_job, list_jobs, run_job


def build_parser():
    parser = argparse.ArgumentParser(description='Run a market-intelligence batch job')
    parser.add_argument('job', nargs='?', choices=sorted(JOB_REGISTRY), help='job to run')
    parser.add_argument('--list', action='store_true', help='list registered jobs and exit')
    parser.add_argument('--athlete-id', type=int, help='restrict to one athlete (valuation, matching)')
    parser.add_argument('--brand-id', type=int, help='restrict to one brand (matching)')
    parser.add_argument('--batch-size', type=int, help='match upsert chunk size (matching)')
    parser.add_argument('--lookback-days', type=int, help='observation window in days (rate_cards)')
    parser.add_argument('--query', action='append', dest='queries', help='search query, repeatable (deal_intel)')
    parser.add_argument('--enqueue', action='store_true', help='enqueue on RQ instead of running inline')
    return parser


def job_params(args):
    """Only the params the chosen job understands."""
    by_job = {
        'valuation': {'athlete_id': args.athlete_id},
        'rate_cards': {'lookback_days': args.lookback_days},
        'matching': {
            'athlete_id': args.athlete_id,
            'brand_id': args.brand_id,
            'batch_size': args.batch_size,
        },
        'deal_intel': {'queries': args.queries},
    }
    return {k: v for k, v in by_job.get(args.job, {}).items() if v is not None}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        print(json.dumps(list_jobs(), indent=2))
        return 0
    if not args.job:
        parser.error('a job name is required (or --list)')

    init_app()
    params = job_params(args)

    if args.enqueue:
        job_id = launch_job(args.job, **params)
        print(f"Enqueued {args.job}: {job_id}")
        return 0

    try:
        result = run_job(args.job, **params)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(result, indent=2, default=str))
    return 1 if result['failed'] or result['errors'] else 0


if __name__ == '__main__':
    sys.exit(main())
