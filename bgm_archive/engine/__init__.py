"""Engine components: rate limit → fetch → decode → write."""

from .fetcher import FetchOutcome, OutcomeKind, RetryPolicy, SubjectFetcher, create_client
from .ratelimit import AsyncioClock, Clock, RateLimiter
from .writer import RecordWriter, shard_for

__all__ = [
    "AsyncioClock",
    "Clock",
    "FetchOutcome",
    "OutcomeKind",
    "RateLimiter",
    "RecordWriter",
    "RetryPolicy",
    "SubjectFetcher",
    "create_client",
    "shard_for",
]
