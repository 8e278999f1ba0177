"""Store manifest definition for the plugin system."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from defect_tracker.stores.base import TrackerStore

ConfigT = TypeVar("ConfigT", bound=BaseModel)


@dataclass(frozen=True, kw_only=True)
class StoreManifest(Generic[ConfigT]):
    """Manifest describing a store plugin.

    The manifest contains references to the configuration class and the
    store factory so backends are only imported once selected by key.
    """

    config_cls: type[ConfigT]
    store_factory: Callable[[ConfigT], TrackerStore]

    def create(self, raw_config: Mapping[str, object]) -> TrackerStore:
        """Validate a raw configuration mapping and build the store."""
        return self.store_factory(self.config_cls.model_validate(raw_config))
