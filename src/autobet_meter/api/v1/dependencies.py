"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends

from autobet_meter.services.metering import MeteredCycleOrchestrator, get_orchestrator


def get_orchestrator_dep() -> MeteredCycleOrchestrator:
    """Get the process-wide orchestrator for dependency injection."""
    return get_orchestrator()


# Type alias for the orchestrator dependency
OrchestratorDep = Annotated[MeteredCycleOrchestrator, Depends(get_orchestrator_dep)]
