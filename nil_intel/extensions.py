"""
Shared client instances — Redis connection for the RQ job queue.

redis.from_url() does not connect until first use, so importing this module
is always safe (even when Redis is unreachable during tests).
"""
import redis

from nil_intel.config import REDIS_URL

# RQ stores pickled job payloads, so responses must stay as bytes.
redis_client = redis.from_url(REDIS_URL)
