from __future__ import annotations

from pathlib import Path

import pytest

from caprun.contracts import LEDGER_COLUMNS
from caprun.export import EVENT_LOG_COLUMNS, ExportService, encode_csv_cell
from tests.helpers import play_through, start_run


def _finished_run(seed: int = 440):
    engine = start_run("KC", "PRO", seed=seed)
    play_through(engine)
    engine.finish_run()
    return engine


def test_csv_cells_are_quoted_and_normalized():
    assert encode_csv_cell(True) == '"true"'
    assert encode_csv_cell(False) == '"false"'
    assert encode_csv_cell(3.0) == '"3"'
    assert encode_csv_cell(-2.5) == '"-2.5"'
    assert encode_csv_cell(None) == '""'
    assert encode_csv_cell('say "cap"') == '"say ""cap"""'
    assert encode_csv_cell("pending") == '"pending"'


def test_ledger_csv_has_header_plus_one_line_per_row():
    engine = _finished_run()
    csv_text = ExportService().build_ledger_csv(engine.state.run_log)
    lines = csv_text.split("\n")

    assert lines[0] == ",".join(LEDGER_COLUMNS)
    assert len(lines) - 1 == len(engine.state.run_log) == len(engine.state.mission_plan) + 1
    assert '"RUN_SUMMARY"' in lines[-1]
    assert '"CHK-' in lines[-1]
    assert '"pending"' in lines[1]


def test_write_ledger_csv(tmp_path: Path):
    engine = _finished_run()
    path = ExportService().write_ledger_csv(engine.state.run_log, tmp_path / "nested" / "ledger.csv")
    assert path.exists()
    assert path.read_text(encoding="utf-8") == ExportService().build_ledger_csv(engine.state.run_log)


def test_export_run_writes_csv_and_parquet(tmp_path: Path):
    duckdb = pytest.importorskip("duckdb")
    engine = _finished_run()
    paths = ExportService().export_run(engine.state, tmp_path / "out")

    names = sorted(p.name for p in paths)
    assert names == ["event_log.csv", "event_log.parquet", "run_ledger.csv", "run_ledger.parquet"]
    assert all(p.exists() for p in paths)

    ledger_parquet = (tmp_path / "out" / "run_ledger.parquet").as_posix()
    events_parquet = (tmp_path / "out" / "event_log.parquet").as_posix()
    with duckdb.connect() as conn:
        rows = conn.execute(f"SELECT COUNT(*) FROM read_parquet('{ledger_parquet}')").fetchone()[0]
        assert rows == len(engine.state.run_log)
        summary = conn.execute(
            f"SELECT role, cleared, review_checksum FROM read_parquet('{ledger_parquet}') WHERE mission_id = 'RUN_SUMMARY'"
        ).fetchone()
        assert summary[0] == "SUMMARY"
        assert summary[1] in {"true", "false"}
        assert summary[2].startswith("CHK-")
        columns = [r[0] for r in conn.execute(f"DESCRIBE SELECT * FROM read_parquet('{events_parquet}')").fetchall()]
        assert tuple(columns) == EVENT_LOG_COLUMNS
        events = conn.execute(f"SELECT COUNT(*) FROM read_parquet('{events_parquet}')").fetchone()[0]
        assert events == len(engine.state.event_log) == 3
