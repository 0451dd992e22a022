"""Validated response model for the external detection service."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class DetectionResult(BaseModel):
    """Structured output of a `/predict` call.

    Only the three documented fields are kept; anything else the service
    returns is ignored.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    detection_count: int = Field(ge=0)
    labels: List[str]
    prediction_uid: str

    @property
    def labels_text(self) -> str:
        """Labels joined the way they are shown to the user."""
        return ", ".join(self.labels)
