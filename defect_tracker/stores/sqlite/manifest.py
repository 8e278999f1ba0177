"""SQLite store manifest."""

from defect_tracker.stores.manifest import StoreManifest
from defect_tracker.stores.sqlite.config import SqliteStoreConfig
from defect_tracker.stores.sqlite.store import SqliteStore

sqlite_manifest = StoreManifest(
    config_cls=SqliteStoreConfig,
    store_factory=SqliteStore.from_config,
)
