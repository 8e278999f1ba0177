"""Configuration for the JSON file store."""

from pathlib import Path

from pydantic import BaseModel


class JsonFileStoreConfig(BaseModel):
    """Configuration for the JSON file store."""

    path: Path = Path(".defect-tracker/tracker.json")
    # Indented output is easier to diff by hand but roughly doubles file size
    indent: int | None = 2
