"""Tests for the JSONL dump and replay."""

import json

import pytest

from ohlcv_bench.storage import JsonlWriter, read_jsonl_records


def test_writer_creates_parent_directory(tmp_path, records):
    path = tmp_path / "data" / "stock_data.jsonl"
    with JsonlWriter(path) as writer:
        writer.insert_batch(records[:5])
        writer.insert_batch([])
        writer.insert_batch(records[5:])
    assert writer.records_written == len(records)

    lines = path.read_text().splitlines()
    assert len(lines) == len(records)
    first = json.loads(lines[0])
    assert first == records[0].as_dict()


def test_replay_returns_identical_records(tmp_path, records):
    path = tmp_path / "stock_data.jsonl"
    with JsonlWriter(path) as writer:
        writer.insert_batch(records)

    replayed = list(read_jsonl_records(path, chunksize=7))
    assert replayed == records
    assert all(isinstance(record.date, str) for record in replayed)


def test_append_mode_keeps_existing_lines(tmp_path, records):
    path = tmp_path / "stock_data.jsonl"
    with JsonlWriter(path) as writer:
        writer.insert_batch(records[:10])
    with JsonlWriter(path, append=True) as writer:
        writer.insert_batch(records[10:])
    assert list(read_jsonl_records(path)) == records


def test_insert_after_close_fails(tmp_path, records):
    writer = JsonlWriter(tmp_path / "out.jsonl")
    writer.close()
    with pytest.raises(RuntimeError):
        writer.insert_batch(records)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_jsonl_records(tmp_path / "missing.jsonl")
