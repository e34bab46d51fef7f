# src/autobet_meter/models/__init__.py
"""SQLAlchemy models for the Autobet Meter service."""

from .account import Account

__all__ = ["Account"]
