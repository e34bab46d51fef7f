"""Structured answers expected from the vision classifier.

Each model doubles as the JSON schema sent to the provider and as the
validator for its reply, so field aliases match the wire names the prompts ask for.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _ClassifierOutput(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class BettingObservation(_ClassifierOutput):
    """Whether the betting window is open and how many seconds it shows."""

    start_betting: bool = Field(..., alias="startBetting")
    timer: float = Field(..., description="Seconds shown on the betting countdown.")


class ConnectionObservation(_ClassifierOutput):
    """Whether the interface shows a disconnection that needs a refresh."""

    need_refresh: bool = Field(..., alias="needRefresh")
