"""Metered betting and connection status endpoints.

Each POST endpoint charges the caller's balance before doing any work. Errors
are raised as ``MeteringError`` subclasses and rendered by the application's
exception handlers.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from autobet_meter.api.v1.dependencies import OrchestratorDep
from autobet_meter.schemas import (
    BalanceResponse,
    BettingStatusResponse,
    ConnectionStatusResponse,
    ErrorResponse,
    ImageCheckRequest,
)

router = APIRouter(tags=["betting"])

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/check-betting",
    response_model=BettingStatusResponse,
    responses=_ERROR_RESPONSES,
)
async def check_betting(
    payload: ImageCheckRequest, orchestrator: OrchestratorDep
) -> BettingStatusResponse:
    """Report the betting window, answering from the shared cycle timer when it is trusted."""
    observed_at = orchestrator.timer.clock()
    verdict = await orchestrator.check_betting(
        payload.id, payload.image, observed_at=observed_at
    )
    return BettingStatusResponse(
        start_betting=verdict.active,
        timer=verdict.remaining,
        balance=verdict.balance,
    )


@router.post(
    "/check-betting-2",
    response_model=BettingStatusResponse,
    responses=_ERROR_RESPONSES,
)
async def read_betting(
    payload: ImageCheckRequest, orchestrator: OrchestratorDep
) -> BettingStatusResponse:
    """Classify the betting window from the screenshot alone."""
    verdict = await orchestrator.read_betting(payload.id, payload.image)
    return BettingStatusResponse(
        start_betting=verdict.active,
        timer=verdict.remaining,
        balance=verdict.balance,
    )


@router.post(
    "/check-connection",
    response_model=ConnectionStatusResponse,
    responses=_ERROR_RESPONSES,
)
async def check_connection(
    payload: ImageCheckRequest, orchestrator: OrchestratorDep
) -> ConnectionStatusResponse:
    """Report whether the game interface shows a disconnection."""
    verdict = await orchestrator.check_connection(payload.id, payload.image)
    return ConnectionStatusResponse(need_refresh=verdict.need_refresh, balance=verdict.balance)


@router.get("/balance", response_model=BalanceResponse, responses=_ERROR_RESPONSES)
async def get_balance(
    orchestrator: OrchestratorDep,
    user_id: str | None = Query(default=None, alias="id"),
) -> BalanceResponse:
    """Return the caller's balance without charging for it."""
    return BalanceResponse(balance=await orchestrator.balance(user_id))


@router.options("/check-betting", include_in_schema=False)
@router.options("/check-betting-2", include_in_schema=False)
@router.options("/check-connection", include_in_schema=False)
@router.options("/balance", include_in_schema=False)
async def preflight() -> Response:
    """Answer bare pre-flight requests that the CORS middleware does not intercept."""
    return Response(status_code=status.HTTP_200_OK)
