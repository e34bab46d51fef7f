"""System and transparency endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from autobet_meter.api.v1.dependencies import OrchestratorDep
from autobet_meter.core.settings import settings

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/cycle")
async def get_cycle_status(orchestrator: OrchestratorDep) -> dict[str, object]:
    """Expose the shared cycle timer's configuration and current reading.

    Unmetered; reading the timer never triggers a classifier call.

    Returns:
        Dictionary with the cycle shape, per-endpoint costs and the current
        phase snapshot
    """
    timer = orchestrator.timer
    reading = timer.snapshot()
    return {
        "app": {"name": settings.app_name, "version": settings.app_version},
        "cycle": {
            "active_seconds": timer.active_seconds,
            "dormant_seconds": timer.dormant_seconds,
            "expiry_seconds": timer.expiry_seconds,
            "safety_buffer_seconds": timer.safety_buffer_seconds,
        },
        "costs": {
            "check_betting": orchestrator.costs.check_betting,
            "read_betting": orchestrator.costs.read_betting,
            "check_connection": orchestrator.costs.check_connection,
        },
        "state": {
            "phase": reading.phase.value,
            "remaining": (
                round(reading.remaining, orchestrator.precision)
                if reading.remaining is not None
                else None
            ),
            "cycle_number": reading.cycle_number,
            "position": round(reading.position, orchestrator.precision),
        },
    }
