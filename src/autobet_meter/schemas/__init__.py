# src/autobet_meter/schemas/__init__.py
"""Pydantic schemas for the Autobet Meter API and classifier answers."""

from .cycle import (
    BalanceResponse,
    BettingStatusResponse,
    ConnectionStatusResponse,
    ErrorResponse,
    ImageCheckRequest,
)
from .observations import BettingObservation, ConnectionObservation

__all__ = [
    "BalanceResponse",
    "BettingObservation",
    "BettingStatusResponse",
    "ConnectionObservation",
    "ConnectionStatusResponse",
    "ErrorResponse",
    "ImageCheckRequest",
]
