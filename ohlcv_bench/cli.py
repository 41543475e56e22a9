"""
Command line entry point.

    ohlcv-bench generate --config bench.yaml --output data/stock_data.jsonl
    ohlcv-bench load --config bench.yaml --backend postgresql --backend clickhouse
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from ohlcv_bench.config import BenchConfig, load_config
from ohlcv_bench.exceptions import BatchInsertError, ConfigurationError
from ohlcv_bench.generator import OHLCVGenerator
from ohlcv_bench.loader import BatchLoader, batched
from ohlcv_bench.storage import JsonlWriter, StorageBackend, build_backend, read_jsonl_records
from ohlcv_bench.storage.jsonl import DEFAULT_OUTPUT_PATH
from ohlcv_bench.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def run_generate(config: BenchConfig) -> int:
    """Streams the generated records of every configured instrument to a JSONL file."""
    generator = OHLCVGenerator(config.start_date, config.end_date)
    start = time.perf_counter()
    with JsonlWriter(config.output_path) as writer:
        for batch in batched(generator.generate(config.instrument_ids), config.batch_size):
            writer.insert_batch(batch)
        written = writer.records_written
    logger.info(
        f"Data generation completed: {written} records for {config.instrument_count} instruments "
        f"in {time.perf_counter() - start:.2f}s"
    )
    return written


def _open_backends(config: BenchConfig, names: List[str]) -> Dict[str, StorageBackend]:
    missing = [name for name in names if name not in config.backends]
    if missing:
        raise ConfigurationError(
            f"Unknown backend(s): {', '.join(missing)} (configured: {', '.join(config.backends)})"
        )
    backends: Dict[str, StorageBackend] = {}
    try:
        for name in names:
            backends[name] = build_backend(config.backends[name])
    except Exception:
        for backend in backends.values():
            backend.close()
        raise
    return backends


def _check_replay_source(config: BenchConfig, backend_names: List[str], from_jsonl: str) -> None:
    source = Path(from_jsonl).resolve()
    for name in backend_names:
        settings = config.backends.get(name, {})
        if settings.get("type") == "jsonl" and Path(settings.get("path", DEFAULT_OUTPUT_PATH)).resolve() == source:
            raise ConfigurationError(
                f"Backend '{name}' would overwrite the replay source {from_jsonl}",
                {"backend": name, "from_jsonl": from_jsonl},
            )


def run_load(config: BenchConfig, backend_names: List[str], from_jsonl: Optional[str] = None):
    """Loads generated (or replayed) records into the selected backends."""
    # Resolve the source before opening backends: JSONL backends truncate their file
    if from_jsonl:
        _check_replay_source(config, backend_names, from_jsonl)
        try:
            records = read_jsonl_records(from_jsonl, chunksize=config.batch_size)
        except FileNotFoundError as e:
            raise ConfigurationError(str(e), {"from_jsonl": from_jsonl}) from e
        logger.info(f"Replaying records from {from_jsonl}")
    else:
        generator = OHLCVGenerator(config.start_date, config.end_date)
        records = generator.generate(config.instrument_ids)

    backends = _open_backends(config, backend_names)
    try:
        loader = BatchLoader(
            backends,
            batch_size=config.batch_size,
            max_tries=config.max_tries,
            fail_fast=config.fail_fast,
        )
        return loader.load(records)
    finally:
        for backend in backends.values():
            backend.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ohlcv-bench",
        description="Generate synthetic OHLCV data and load it into benchmark databases.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Write generated records to a JSONL file.")
    generate.add_argument("--config", help="Path to a YAML configuration file.")
    generate.add_argument("--output", help="Output JSONL path (overrides output_path).")
    generate.add_argument("--instruments", type=int, help="Number of instruments (overrides instrument_count).")

    load = subparsers.add_parser("load", help="Load records into one or more backends.")
    load.add_argument("--config", help="Path to a YAML configuration file.")
    load.add_argument(
        "--backend",
        action="append",
        dest="backends",
        help="Backend name from the configuration; repeat for several (default: all configured).",
    )
    load.add_argument("--from-jsonl", help="Replay records from a JSONL file instead of generating them.")
    load.add_argument("--instruments", type=int, help="Number of instruments (overrides instrument_count).")
    load.add_argument("--batch-size", type=int, help="Rows per insert batch (overrides batch_size).")
    load.add_argument("--fail-fast", action="store_true", help="Abort on the first failed batch.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    overrides = {"instrument_count": args.instruments}
    if args.command == "generate":
        overrides["output_path"] = args.output
    else:
        overrides["batch_size"] = args.batch_size
        overrides["fail_fast"] = True if args.fail_fast else None

    try:
        # replace() re-runs validation on the command line values
        config = replace(
            load_config(args.config),
            **{key: value for key, value in overrides.items() if value is not None},
        )
        if args.command == "generate":
            run_generate(config)
        else:
            run_load(config, args.backends or list(config.backends), args.from_jsonl)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except BatchInsertError as e:
        logger.error(f"Load aborted: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
