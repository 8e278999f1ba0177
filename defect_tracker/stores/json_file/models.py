"""Pydantic models for the JSON file store document."""

from collections.abc import Mapping, Sequence
from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator

from defect_tracker.models.defect import Defect
from defect_tracker.models.run import TestRun

DOCUMENT_VERSION = 1


class TrackerDocument(BaseModel):
    """The whole persisted tracker state as a single JSON document."""

    version: Literal[1] = DOCUMENT_VERSION
    runs: Sequence[TestRun] = Field(default_factory=list)
    defects: Mapping[str, Defect] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_consistency(self) -> Self:
        """Reject documents whose run history or keys are out of order."""
        numbers = [run.run_number for run in self.runs]
        if numbers != sorted(set(numbers)):
            raise ValueError("Run numbers must be strictly increasing")
        for key, defect in self.defects.items():
            if key != defect.id:
                raise ValueError(f"Defect key {key!r} does not match id {defect.id!r}")
        return self
