"""Metered orchestration of classifier-backed status checks.

Every metered request follows the same gate: the account must exist, must
hold a positive balance, and is debited atomically before any further work.
The debit stands whatever happens afterwards, including answers served from
the shared cycle timer without contacting the classifier.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from autobet_meter.core.errors import (
    InferenceFailureError,
    InputValidationError,
    InsufficientBalanceError,
    MalformedClassifierOutputError,
)
from autobet_meter.core.settings import settings
from autobet_meter.schemas.observations import BettingObservation, ConnectionObservation
from autobet_meter.services import instructions
from autobet_meter.services.classifier import (
    Classifier,
    ClassifierError,
    ClassifierOutputError,
    get_classifier_client,
)
from autobet_meter.services.cycle_timer import CyclePhase, CycleTimer, PhaseReading
from autobet_meter.services.heartbeat import CycleHeartbeat
from autobet_meter.services.ledger import BalanceLedger, build_ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeteringCosts:
    """Units debited per request for each metered operation."""

    check_betting: int = 1
    read_betting: int = 2
    check_connection: int = 3


@dataclass(frozen=True)
class BettingVerdict:
    """Betting status returned to the caller.

    ``from_cache`` is True when the answer came from the shared timer and no
    classifier call was made.
    """

    active: bool
    remaining: float
    balance: int
    from_cache: bool = False


@dataclass(frozen=True)
class ConnectionVerdict:
    need_refresh: bool
    balance: int


def _require(value: str | None, message: str) -> str:
    if not value:
        raise InputValidationError(message)
    return value


class MeteredCycleOrchestrator:
    """Coordinates ledger debits, the shared cycle timer and the classifier."""

    def __init__(
        self,
        ledger: BalanceLedger,
        classifier: Classifier,
        timer: CycleTimer,
        *,
        costs: MeteringCosts | None = None,
        heartbeat: CycleHeartbeat | None = None,
        precision: int | None = None,
        fast_model: str | None = None,
    ) -> None:
        self.ledger = ledger
        self.classifier = classifier
        self.timer = timer
        self.costs = costs or MeteringCosts()
        self.heartbeat = heartbeat
        self.precision = settings.remaining_precision if precision is None else precision
        self.fast_model = fast_model or settings.classifier_fast_model

    def _round(self, seconds: float) -> float:
        return round(max(0.0, float(seconds)), self.precision)

    async def balance(self, user_id: str | None) -> int:
        """Return the current balance without charging for it."""
        user_id = _require(user_id, "User ID is required")
        record = await asyncio.to_thread(self.ledger.get, user_id)
        return record.balance

    async def charge(self, user_id: str, cost: int) -> int:
        """Debit ``cost`` units from ``user_id`` and return the new balance.

        Raises:
            AccountNotFoundError: No ledger record exists for ``user_id``.
            InsufficientBalanceError: The balance is not positive.
            LedgerUnavailableError: The ledger could not be reached.
        """
        current = await asyncio.to_thread(self.ledger.get, user_id)
        if current.balance <= 0:
            raise InsufficientBalanceError()

        record = await asyncio.to_thread(
            self.ledger.atomic_add, user_id, -int(cost), require_positive=True
        )
        logger.info(
            "Charged %s: %d -> %d (cost %d)", user_id, current.balance, record.balance, cost
        )
        return record.balance

    async def _observe_betting(
        self, image: str, instruction: str, model: str | None
    ) -> BettingObservation:
        try:
            return await self.classifier.classify(
                image, instruction, BettingObservation, model=model
            )
        except ClassifierOutputError as exc:
            logger.error("Betting check received malformed classifier output: %s", exc)
            raise MalformedClassifierOutputError() from exc
        except ClassifierError as exc:
            logger.error("Betting check classifier call failed: %s", exc)
            raise InferenceFailureError("Failed to check betting status") from exc
        except Exception as exc:
            logger.exception("Betting check failed unexpectedly")
            raise InferenceFailureError("Failed to check betting status") from exc

    def _verdict(self, reading: PhaseReading, balance: int, *, from_cache: bool) -> BettingVerdict:
        if reading.phase is CyclePhase.ACTIVE and reading.remaining is not None:
            return BettingVerdict(
                active=True,
                remaining=self._round(reading.remaining),
                balance=balance,
                from_cache=from_cache,
            )
        return BettingVerdict(active=False, remaining=0.0, balance=balance, from_cache=from_cache)

    async def check_betting(
        self,
        user_id: str | None,
        image: str | None,
        *,
        observed_at: float | None = None,
    ) -> BettingVerdict:
        """Report whether the betting window is open, consulting the shared timer first.

        Args:
            user_id: Account to charge.
            image: Screenshot of the game interface.
            observed_at: Clock reading when the request arrived; defaults to now.
        """
        observed_at = self.timer.clock() if observed_at is None else observed_at
        image = _require(image, "Image is required")
        user_id = _require(user_id, "User ID is required")

        balance = await self.charge(user_id, self.costs.check_betting)

        reading = self.timer.current_phase()
        if reading.phase is CyclePhase.ACTIVE:
            logger.info(
                "Shared timer active - startBetting: True, timer: %.1f, user: %s",
                reading.remaining,
                user_id,
            )
            return self._verdict(reading, balance, from_cache=True)

        observation = await self._observe_betting(image, instructions.BETTING_STATUS, model=None)
        if not (observation.start_betting and observation.timer > 0):
            return BettingVerdict(active=False, remaining=0.0, balance=balance)

        now = self.timer.clock()
        logger.info(
            "Anchoring shared timer with observed timer %.1f, processing time %.3fs",
            observation.timer,
            now - observed_at,
        )
        self.timer.anchor(observation.timer, observed_at, now)
        if self.heartbeat is not None:
            self.heartbeat.ensure_running()
        return self._verdict(self.timer.current_phase(now), balance, from_cache=False)

    async def read_betting(self, user_id: str | None, image: str | None) -> BettingVerdict:
        """Classify the betting status directly, bypassing the shared timer."""
        image = _require(image, "Image is required")
        user_id = _require(user_id, "User ID is required")

        balance = await self.charge(user_id, self.costs.read_betting)
        observation = await self._observe_betting(
            image, instructions.BETTING_STATUS_SHORT, model=self.fast_model
        )
        return BettingVerdict(
            active=observation.start_betting,
            remaining=self._round(observation.timer),
            balance=balance,
        )

    async def check_connection(self, user_id: str | None, image: str | None) -> ConnectionVerdict:
        """Report whether the interface shows a disconnection."""
        image = _require(image, "Image is required")
        user_id = _require(user_id, "User ID is required")

        balance = await self.charge(user_id, self.costs.check_connection)
        try:
            observation = await self.classifier.classify(
                image,
                instructions.CONNECTION_STATUS,
                ConnectionObservation,
                model=self.fast_model,
            )
        except ClassifierOutputError as exc:
            logger.error("Connection check received malformed classifier output: %s", exc)
            raise MalformedClassifierOutputError() from exc
        except ClassifierError as exc:
            logger.error("Connection check classifier call failed: %s", exc)
            raise InferenceFailureError("Failed to check connection status") from exc
        except Exception as exc:
            logger.exception("Connection check failed unexpectedly")
            raise InferenceFailureError("Failed to check connection status") from exc

        return ConnectionVerdict(need_refresh=observation.need_refresh, balance=balance)


def build_orchestrator() -> MeteredCycleOrchestrator:
    """Assemble the orchestrator from global settings."""
    timer = CycleTimer()
    heartbeat = CycleHeartbeat(timer) if settings.heartbeat_enabled else None
    return MeteredCycleOrchestrator(
        ledger=build_ledger(),
        classifier=get_classifier_client(),
        timer=timer,
        costs=MeteringCosts(
            check_betting=settings.cost_check_betting,
            read_betting=settings.cost_read_betting,
            check_connection=settings.cost_check_connection,
        ),
        heartbeat=heartbeat,
    )


class _OrchestratorSingleton:
    """Singleton wrapper holding the process-wide orchestrator and its timer."""

    _instance: MeteredCycleOrchestrator | None = None

    @classmethod
    def get_instance(cls) -> MeteredCycleOrchestrator:
        if cls._instance is None:
            cls._instance = build_orchestrator()
        return cls._instance


def get_orchestrator() -> MeteredCycleOrchestrator:
    """Return the process-wide orchestrator."""
    return _OrchestratorSingleton.get_instance()
