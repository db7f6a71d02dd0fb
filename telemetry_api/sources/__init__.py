"""Fuentes de telemetría (RecordSource)."""

from .base import MetricQuery, RecordSource, Rollup
from .http_source import HttpRecordSource, group_rollup
from .ndjson import DecodeResult, decode_line, decode_records

__all__ = [
    "MetricQuery",
    "RecordSource",
    "Rollup",
    "HttpRecordSource",
    "group_rollup",
    "DecodeResult",
    "decode_line",
    "decode_records",
]
