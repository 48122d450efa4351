from __future__ import annotations

from dataclasses import asdict, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from caprun.contracts import LEDGER_COLUMNS, EventLogEntry, LedgerRow
from caprun.engine.ledger import serialize_metric_deltas

if TYPE_CHECKING:
    from caprun.engine.run import RunState

try:
    import duckdb
except ModuleNotFoundError:  # pragma: no cover - exercised via runtime environments without duckdb
    duckdb = None  # type: ignore[assignment]

EVENT_LOG_COLUMNS: tuple[str, ...] = tuple(f.name for f in fields(EventLogEntry))

LEDGER_SQL_TYPES: dict[str, str] = {
    "legal": "BOOLEAN",
    "delta_cap_health": "INTEGER",
    "delta_roster_strength": "INTEGER",
    "delta_flexibility": "INTEGER",
    "delta_player_relations": "INTEGER",
    "delta_franchise_value_growth": "INTEGER",
    "cap_delta_m": "DOUBLE",
    "dead_cap_delta_m": "DOUBLE",
    "composite_after": "INTEGER",
}

EVENT_LOG_SQL_TYPES: dict[str, str] = {
    "mission_checkpoint": "INTEGER",
    "cap_delta_m": "DOUBLE",
    "dead_cap_delta_m": "DOUBLE",
}


def encode_csv_cell(value: Any) -> str:
    if value is None:
        text = ""
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    return '"' + text.replace('"', '""') + '"'


def _csv_lines(columns: Sequence[str], records: Iterable[dict[str, Any]]) -> list[str]:
    lines = [",".join(columns)]
    for record in records:
        lines.append(",".join(encode_csv_cell(record.get(col)) for col in columns))
    return lines


def _event_record(entry: EventLogEntry) -> dict[str, Any]:
    record = asdict(entry)
    record["metric_deltas"] = serialize_metric_deltas(entry.metric_deltas)
    return record


class ExportService:
    """CSV and Parquet export of run ledgers and event logs."""

    def build_ledger_csv(self, run_log: Sequence[LedgerRow]) -> str:
        return "\n".join(_csv_lines(LEDGER_COLUMNS, (asdict(row) for row in run_log)))

    def build_event_log_csv(self, event_log: Sequence[EventLogEntry]) -> str:
        return "\n".join(_csv_lines(EVENT_LOG_COLUMNS, (_event_record(e) for e in event_log)))

    def write_ledger_csv(self, run_log: Sequence[LedgerRow], path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.build_ledger_csv(run_log), encoding="utf-8")
        return path

    def write_event_log_csv(self, event_log: Sequence[EventLogEntry], path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.build_event_log_csv(event_log), encoding="utf-8")
        return path

    def export_run(self, run: RunState, output_dir: Path) -> list[Path]:
        if duckdb is None:
            raise RuntimeError("duckdb is required for exports")
        output_dir.mkdir(parents=True, exist_ok=True)
        outputs = [self.write_ledger_csv(run.run_log, output_dir / "run_ledger.csv")]
        outputs.append(self.write_event_log_csv(run.event_log, output_dir / "event_log.csv"))

        ledger_rows = [
            tuple(self._ledger_value(col, getattr(row, col)) for col in LEDGER_COLUMNS) for row in run.run_log
        ]
        event_rows = [tuple(_event_record(e)[col] for col in EVENT_LOG_COLUMNS) for e in run.event_log]
        with duckdb.connect() as conn:
            outputs.append(
                self._export_table(conn, "run_ledger", LEDGER_COLUMNS, LEDGER_SQL_TYPES, ledger_rows, output_dir)
            )
            outputs.append(
                self._export_table(conn, "event_log", EVENT_LOG_COLUMNS, EVENT_LOG_SQL_TYPES, event_rows, output_dir)
            )
        return outputs

    @staticmethod
    def _ledger_value(column: str, value: Any) -> Any:
        # cleared mixes bool and "pending"; stored as text like the CSV cell
        if column == "cleared" and isinstance(value, bool):
            return "true" if value else "false"
        return value

    def _export_table(
        self,
        conn: Any,
        table: str,
        columns: Sequence[str],
        sql_types: dict[str, str],
        rows: list[tuple[Any, ...]],
        output_dir: Path,
    ) -> Path:
        column_sql = ", ".join(f"{col} {sql_types.get(col, 'VARCHAR')}" for col in columns)
        conn.execute(f"CREATE OR REPLACE TABLE {table} ({column_sql})")
        if rows:
            placeholders = ", ".join("?" for _ in columns)
            conn.executemany(f"INSERT INTO {table} VALUES ({placeholders})", rows)
        parquet_path = output_dir / f"{table}.parquet"
        conn.execute(f"COPY (SELECT * FROM {table}) TO '{parquet_path.as_posix()}' (FORMAT PARQUET)")
        return parquet_path
