"""Request and response schemas for the metered endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ImageCheckRequest(BaseModel):
    """Screenshot submitted by a client along with its account id.

    Both fields are optional at the schema level so that a missing value is
    reported with the endpoint's own error message rather than a schema error.
    """

    image: str | None = Field(default=None, description="Base64 string or data URL.")
    id: str | None = Field(default=None, description="Account identifier.")


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BettingStatusResponse(_WireModel):
    start_betting: bool = Field(..., alias="startBetting")
    timer: float
    balance: int


class ConnectionStatusResponse(_WireModel):
    need_refresh: bool = Field(..., alias="needRefresh")
    balance: int


class BalanceResponse(BaseModel):
    balance: int


class ErrorResponse(BaseModel):
    error: str
