"""Batching delivery of log events to a Parseable ingestion endpoint."""

from .http_client import (
    LOG_SOURCE_HEADER,
    STREAM_HEADER,
    BatchSender,
    ParseableHttpSender,
    basic_auth_header,
    resolve_ingest_url,
)
from .transport import ParseableTransport, RetryState

__all__ = [
    "BatchSender",
    "LOG_SOURCE_HEADER",
    "ParseableHttpSender",
    "ParseableTransport",
    "RetryState",
    "STREAM_HEADER",
    "basic_auth_header",
    "resolve_ingest_url",
]
