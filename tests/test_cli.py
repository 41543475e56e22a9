"""End-to-end runs of the command line entry point against local files."""

import json

import pytest
from sqlalchemy import MetaData, create_engine, text

from ohlcv_bench.cli import build_parser, main
from ohlcv_bench.config import ENV_OVERRIDES
from ohlcv_bench.generator import OHLCVGenerator
from ohlcv_bench.storage.sql import build_stock_table


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config_file(tmp_path):
    db_path = tmp_path / "bench.db"
    engine = create_engine(f"sqlite:///{db_path}")
    metadata = MetaData()
    build_stock_table("stock_data", metadata)
    metadata.create_all(engine)
    engine.dispose()

    path = tmp_path / "bench.yaml"
    path.write_text(
        "start_date: 2014-01-06\n"
        "end_date: 2014-01-17\n"
        "instrument_count: 3\n"
        "batch_size: 8\n"
        f"output_path: {tmp_path / 'out' / 'stock_data.jsonl'}\n"
        "backends:\n"
        "  sqlite:\n"
        "    type: sql\n"
        f"    url: sqlite:///{db_path}\n"
        "  dump:\n"
        "    type: jsonl\n"
        f"    path: {tmp_path / 'loaded.jsonl'}\n"
    )
    return path


def _count_rows(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'bench.db'}")
    with engine.connect() as conn:
        count = conn.execute(text("SELECT COUNT(*) FROM stock_data")).scalar()
    engine.dispose()
    return count


def test_generate_writes_jsonl(tmp_path, config_file):
    assert main(["generate", "--config", str(config_file)]) == 0

    lines = (tmp_path / "out" / "stock_data.jsonl").read_text().splitlines()
    assert len(lines) == 30
    first = json.loads(lines[0])
    expected = next(OHLCVGenerator("2014-01-06", "2014-01-17").generate([1]))
    assert first == expected.as_dict()


def test_generate_output_and_instruments_override(tmp_path, config_file):
    output = tmp_path / "small.jsonl"
    assert main(["generate", "--config", str(config_file), "--output", str(output), "--instruments", "1"]) == 0
    assert len(output.read_text().splitlines()) == 10


def test_load_into_every_configured_backend(tmp_path, config_file):
    assert main(["load", "--config", str(config_file)]) == 0
    assert _count_rows(tmp_path) == 30
    assert len((tmp_path / "loaded.jsonl").read_text().splitlines()) == 30


def test_load_replays_jsonl(tmp_path, config_file):
    assert main(["generate", "--config", str(config_file)]) == 0
    dump = tmp_path / "out" / "stock_data.jsonl"

    code = main(["load", "--config", str(config_file), "--backend", "sqlite", "--from-jsonl", str(dump)])

    assert code == 0
    assert _count_rows(tmp_path) == 30


def test_load_unknown_backend_fails(config_file):
    assert main(["load", "--config", str(config_file), "--backend", "oracle"]) == 1


def test_invalid_override_fails(config_file):
    assert main(["load", "--config", str(config_file), "--batch-size", "0"]) == 1


def test_fail_fast_aborts_on_missing_table(tmp_path, config_file):
    empty_db = tmp_path / "empty.db"
    config_file.write_text(
        config_file.read_text().replace(f"sqlite:///{tmp_path / 'bench.db'}", f"sqlite:///{empty_db}")
    )
    assert main(["load", "--config", str(config_file), "--backend", "sqlite", "--fail-fast"]) == 1


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_load_missing_replay_file_leaves_outputs_alone(tmp_path, config_file):
    existing = tmp_path / "loaded.jsonl"
    existing.write_text('{"kept": true}\n')

    code = main(["load", "--config", str(config_file), "--from-jsonl", str(tmp_path / "nope.jsonl")])

    assert code == 1
    assert existing.read_text() == '{"kept": true}\n'
    assert _count_rows(tmp_path) == 0


def test_load_refuses_to_overwrite_replay_source(tmp_path, config_file):
    assert main(["generate", "--config", str(config_file)]) == 0
    source = tmp_path / "loaded.jsonl"
    (tmp_path / "out" / "stock_data.jsonl").replace(source)
    before = source.read_text()

    code = main(["load", "--config", str(config_file), "--backend", "dump", "--from-jsonl", str(source)])

    assert code == 1
    assert source.read_text() == before


def test_unknown_log_level_is_a_usage_error(config_file):
    with pytest.raises(SystemExit) as exc_info:
        main(["--log-level", "LOUD", "generate", "--config", str(config_file)])
    assert exc_info.value.code == 2


def test_log_level_is_case_insensitive():
    args = build_parser().parse_args(["--log-level", "debug", "generate"])
    assert args.log_level == "DEBUG"
