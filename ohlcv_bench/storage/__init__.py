"""Stores the generated records can be loaded into."""

from typing import Any, Dict

from ohlcv_bench.exceptions import ConfigurationError
from .base import QueryTiming, QueryableBackend, StorageBackend, records_to_dataframe
from .jsonl import JsonlWriter, read_jsonl_records

BACKEND_TYPES = ("clickhouse", "sql", "jsonl")


def build_backend(settings: Dict[str, Any]) -> StorageBackend:
    """
    Creates a backend from one entry of the ``backends`` configuration.

    Args:
        settings: Mapping with a ``type`` key (clickhouse, sql or jsonl) plus the
            keyword arguments of that backend's constructor.

    Raises:
        ConfigurationError: If the type is missing or unknown.
    """
    options = dict(settings)
    backend_type = options.pop("type", None)

    # Client libraries are imported lazily so a JSONL-only run needs neither
    if backend_type == "clickhouse":
        from .clickhouse import ClickHouseDataBase
        return ClickHouseDataBase(**options)
    if backend_type == "sql":
        from .sql import SqlDataBase
        return SqlDataBase(**options)
    if backend_type == "jsonl":
        return JsonlWriter(**options)
    raise ConfigurationError(
        f"Unknown backend type '{backend_type}' (expected one of: {', '.join(BACKEND_TYPES)})",
        {"type": backend_type},
    )


__all__ = [
    "BACKEND_TYPES",
    "JsonlWriter",
    "QueryTiming",
    "QueryableBackend",
    "StorageBackend",
    "build_backend",
    "read_jsonl_records",
    "records_to_dataframe",
]
