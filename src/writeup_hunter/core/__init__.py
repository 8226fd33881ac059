"""Core feed ingestion modules: fetching, retry policy, rate limiting,
deduplication, classification and the pipeline that ties them together."""

from writeup_hunter.core.classifier import KeywordClassifier, KeywordTable, load_keyword_table
from writeup_hunter.core.dedup import DedupStore
from writeup_hunter.core.fetcher import FeedFetcher, create_fetcher
from writeup_hunter.core.pipeline import Pipeline, PipelineSettings, create_pipeline
from writeup_hunter.core.rate_limiter import DomainRateLimiter, host_for_url
from writeup_hunter.core.retry import (
    ErrorCategory,
    FetchError,
    backoff_delay,
    classify_exception,
    is_retryable,
)

__all__ = [
    "DedupStore",
    "DomainRateLimiter",
    "ErrorCategory",
    "FeedFetcher",
    "FetchError",
    "KeywordClassifier",
    "KeywordTable",
    "Pipeline",
    "PipelineSettings",
    "backoff_delay",
    "classify_exception",
    "create_fetcher",
    "create_pipeline",
    "host_for_url",
    "is_retryable",
    "load_keyword_table",
]
