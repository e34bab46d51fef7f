# src/autobet_meter/services/__init__.py
"""Business logic services for the Autobet Meter application."""

from .classifier import ClassifierClient
from .cycle_timer import CycleTimer
from .heartbeat import CycleHeartbeat
from .ledger import RedisBalanceLedger, SqlBalanceLedger
from .metering import MeteredCycleOrchestrator

__all__ = [
    "ClassifierClient",
    "CycleTimer",
    "CycleHeartbeat",
    "SqlBalanceLedger",
    "RedisBalanceLedger",
    "MeteredCycleOrchestrator",
]
