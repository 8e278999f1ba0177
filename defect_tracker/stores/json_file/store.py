"""JSON file store implementation."""

import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from defect_tracker.errors import StorageError
from defect_tracker.models.defect import Defect
from defect_tracker.models.run import TestRun
from defect_tracker.stores.base import LoadWarning, StoreSnapshot, TrackerStore
from defect_tracker.stores.json_file.config import JsonFileStoreConfig
from defect_tracker.stores.json_file.models import TrackerDocument

log = logging.getLogger(__name__)


class _CorruptDocumentError(Exception):
    """The document exists but cannot be read back."""


@dataclass(frozen=True, kw_only=True)
class JsonFileStore(TrackerStore):
    """Keeps runs and defects together in one JSON document.

    Writes go to a temporary file in the same directory which is then renamed
    over the document, so readers only ever see a complete document.
    """

    config: JsonFileStoreConfig

    @classmethod
    def from_config(cls, config: JsonFileStoreConfig) -> "JsonFileStore":
        """Create store from configuration."""
        return cls(config=config)

    @property
    def path(self) -> Path:
        """Location of the tracker document."""
        return self.config.path

    def load(self) -> StoreSnapshot:
        """Read the document, degrading to an empty snapshot on failure."""
        try:
            document = self._read_document()
        except FileNotFoundError:
            message = f"No tracker data at {self.path}, starting empty"
            log.info(message)
            return StoreSnapshot(warnings=[LoadWarning(kind="missing", message=message)])
        except (_CorruptDocumentError, OSError) as exc:
            message = f"Tracker data at {self.path} is unreadable, starting empty: {exc}"
            log.warning(message)
            return StoreSnapshot(warnings=[LoadWarning(kind="corrupt", message=message)])

        log.info(
            "Loaded %d run(s) and %d defect(s) from %s",
            len(document.runs),
            len(document.defects),
            self.path,
        )
        return StoreSnapshot(runs=list(document.runs), defects=dict(document.defects))

    def commit(self, run: TestRun, defects: Mapping[str, Defect]) -> None:
        """Append the run and rewrite the catalog in a single replace."""
        current = self._read_for_update()
        try:
            document = TrackerDocument(runs=[*current.runs, run], defects=defects)
        except ValidationError as exc:
            raise StorageError(f"Refusing to write inconsistent data: {exc}") from exc
        self._write_document(document)
        log.info("Committed run #%d to %s", run.run_number, self.path)

    def clear(self) -> None:
        """Replace the document with an empty one."""
        self._write_document(TrackerDocument())
        log.info("Cleared tracker data at %s", self.path)

    def _read_document(self) -> TrackerDocument:
        raw = self.path.read_bytes()
        try:
            return TrackerDocument.model_validate_json(raw)
        except ValidationError as exc:
            raise _CorruptDocumentError(
                f"{exc.error_count()} validation error(s)"
            ) from exc

    def _read_for_update(self) -> TrackerDocument:
        """Read the document for rewriting, keeping a copy if it is corrupt.

        Only a document that fails validation is moved aside. A document that
        cannot be read at all is left in place and the commit fails.
        """
        try:
            return self._read_document()
        except FileNotFoundError:
            return TrackerDocument()
        except OSError as exc:
            raise StorageError(f"Cannot read tracker data at {self.path}: {exc}") from exc
        except _CorruptDocumentError:
            stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
            backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
            try:
                self.path.replace(backup)
            except OSError as exc:
                raise StorageError(
                    f"Cannot move corrupt tracker data out of the way: {exc}"
                ) from exc
            log.warning("Moved corrupt tracker data to %s", backup)
            return TrackerDocument()

    def _write_document(self, document: TrackerDocument) -> None:
        try:
            payload = document.model_dump_json(indent=self.config.indent)
        except ValueError as exc:
            raise StorageError(f"Cannot serialise tracker data: {exc}") from exc

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write tracker data to {self.path}: {exc}") from exc
