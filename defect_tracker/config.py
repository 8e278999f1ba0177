"""Tracker configuration and its YAML loader."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from defect_tracker.trends import DEFAULT_TREND_WINDOW


class TrackerConfig(BaseModel):
    """Configuration for a DefectTracker instance."""

    store: str = Field(default="json-file", description="Store key (entry point name)")
    store_config: dict[str, Any] = Field(
        default_factory=dict, description="Backend specific store configuration"
    )
    trend_window: int = Field(default=DEFAULT_TREND_WINDOW, ge=1)


def load_tracker_config(path: Path) -> TrackerConfig:
    """Load tracker configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated tracker configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, is not valid YAML or fails validation

    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        raise ValueError(f"Empty config file: {path}")

    try:
        return TrackerConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid tracker config schema in {path}: {exc}") from exc
