"""JSON file store manifest."""

from defect_tracker.stores.json_file.config import JsonFileStoreConfig
from defect_tracker.stores.json_file.store import JsonFileStore
from defect_tracker.stores.manifest import StoreManifest

json_file_manifest = StoreManifest(
    config_cls=JsonFileStoreConfig,
    store_factory=JsonFileStore.from_config,
)
