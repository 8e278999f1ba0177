"""Abstract base class for tracker persistence backends."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal

from defect_tracker.models.defect import Defect
from defect_tracker.models.run import TestRun


@dataclass(frozen=True, kw_only=True)
class LoadWarning:
    """A problem found while loading, reported instead of raised."""

    kind: Literal["missing", "corrupt"]
    message: str


@dataclass(frozen=True, kw_only=True)
class StoreSnapshot:
    """A self-consistent view of the persisted run history and catalog."""

    runs: Sequence[TestRun] = ()
    defects: Mapping[str, Defect] = field(default_factory=dict)
    warnings: Sequence[LoadWarning] = ()

    @property
    def is_empty(self) -> bool:
        """Whether nothing has been persisted yet."""
        return not self.runs and not self.defects


class TrackerStore(ABC):
    """Abstract base for durable storage of runs and defects.

    Every write is all-or-nothing: a sealed run is never visible without the
    defect catalog it produced, and a reader always sees a complete snapshot.
    """

    @abstractmethod
    def load(self) -> StoreSnapshot:
        """Read the current snapshot.

        Missing or corrupt storage yields an empty snapshot carrying a
        ``LoadWarning`` rather than an exception.
        """

    @abstractmethod
    def commit(self, run: TestRun, defects: Mapping[str, Defect]) -> None:
        """Append a sealed run and replace the defect catalog atomically.

        Args:
            run: Sealed run to append to the history
            defects: Complete defect catalog after the run, keyed by defect ID

        Raises:
            StorageError: If the write could not be completed

        """

    @abstractmethod
    def clear(self) -> None:
        """Remove all runs and defects atomically.

        Raises:
            StorageError: If the write could not be completed

        """

    def close(self) -> None:
        """Release any resources held by the store."""
