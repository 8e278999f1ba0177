"""Configuration for the SQLite store."""

from pathlib import Path

from pydantic import BaseModel, Field


class SqliteStoreConfig(BaseModel):
    """Configuration for the SQLite store."""

    path: Path = Path(".defect-tracker/tracker.db")
    timeout: float = Field(default=5.0, gt=0, description="Lock wait in seconds")
