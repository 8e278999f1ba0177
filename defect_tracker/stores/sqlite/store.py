"""SQLite store implementation."""

import logging
import sqlite3
from collections.abc import Iterator, Mapping
from contextlib import closing, contextmanager
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from defect_tracker.errors import StorageError
from defect_tracker.models.defect import Defect
from defect_tracker.models.run import TestRun
from defect_tracker.stores.base import LoadWarning, StoreSnapshot, TrackerStore
from defect_tracker.stores.sqlite.config import SqliteStoreConfig

log = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS runs (
    run_number  INTEGER PRIMARY KEY,
    document    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS defects (
    id          TEXT PRIMARY KEY,
    test_id     TEXT NOT NULL UNIQUE,
    document    TEXT NOT NULL
);
"""


@dataclass(frozen=True, kw_only=True)
class SqliteStore(TrackerStore):
    """Keeps runs and defects in an embedded SQLite database.

    Each commit or clear is one transaction. The database runs in WAL mode so
    a dashboard reading in another process is never blocked by the writer.
    """

    config: SqliteStoreConfig

    @classmethod
    def from_config(cls, config: SqliteStoreConfig) -> "SqliteStore":
        """Create store from configuration."""
        return cls(config=config)

    @property
    def path(self) -> Path:
        """Location of the database file."""
        return self.config.path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self.path, timeout=self.config.timeout)) as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
            yield conn

    def load(self) -> StoreSnapshot:
        """Read all rows in one transaction, degrading to empty if corrupt.

        Raises:
            StorageError: If the database is locked or cannot be opened

        """
        if not self.path.exists():
            message = f"No tracker database at {self.path}, starting empty"
            log.info(message)
            return StoreSnapshot(warnings=[LoadWarning(kind="missing", message=message)])

        try:
            with self._connect() as conn, conn:
                # Both reads must come from the same snapshot
                conn.execute("BEGIN")
                run_rows = conn.execute(
                    "SELECT document FROM runs ORDER BY run_number"
                ).fetchall()
                defect_rows = conn.execute("SELECT document FROM defects").fetchall()
            runs = [TestRun.model_validate_json(row[0]) for row in run_rows]
            defects = [Defect.model_validate_json(row[0]) for row in defect_rows]
        except sqlite3.OperationalError as exc:
            raise StorageError(
                f"Cannot read tracker database at {self.path}: {exc}"
            ) from exc
        except (sqlite3.DatabaseError, ValidationError) as exc:
            message = f"Tracker database at {self.path} is unreadable, starting empty: {exc}"
            log.warning(message)
            return StoreSnapshot(warnings=[LoadWarning(kind="corrupt", message=message)])

        log.info(
            "Loaded %d run(s) and %d defect(s) from %s",
            len(runs),
            len(defects),
            self.path,
        )
        return StoreSnapshot(runs=runs, defects={d.id: d for d in defects})

    def commit(self, run: TestRun, defects: Mapping[str, Defect]) -> None:
        """Insert the run and replace the defect rows in one transaction."""
        try:
            run_row = (run.run_number, run.model_dump_json())
            defect_rows = [
                (key, defect.test_id, defect.model_dump_json())
                for key, defect in defects.items()
            ]
        except ValueError as exc:
            raise StorageError(f"Cannot serialise tracker data: {exc}") from exc

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as conn, conn:
                conn.execute(
                    "INSERT INTO runs (run_number, document) VALUES (?, ?)", run_row
                )
                conn.execute("DELETE FROM defects")
                conn.executemany(
                    "INSERT INTO defects (id, test_id, document) VALUES (?, ?, ?)",
                    defect_rows,
                )
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(
                f"Cannot write run #{run.run_number} to {self.path}: {exc}"
            ) from exc
        log.info("Committed run #%d to %s", run.run_number, self.path)

    def clear(self) -> None:
        """Delete all runs and defects in one transaction."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as conn, conn:
                conn.execute("DELETE FROM runs")
                conn.execute("DELETE FROM defects")
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot clear {self.path}: {exc}") from exc
        log.info("Cleared tracker data at %s", self.path)
