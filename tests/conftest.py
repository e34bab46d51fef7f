# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("HEARTBEAT_ENABLED", "false")
os.environ.setdefault("OPENROUTER_API_KEY", "test-key")

from autobet_meter.api.v1.dependencies import get_orchestrator_dep
from autobet_meter.db.session import Base
from autobet_meter.main import app as fastapi_app
from autobet_meter.models import Account
from autobet_meter.services.cycle_timer import CycleTimer
from autobet_meter.services.ledger import SqlBalanceLedger
from autobet_meter.services.metering import MeteredCycleOrchestrator, MeteringCosts

TEST_DB_URL = "sqlite://"
CLOCK_START = 1_000.0


class ManualClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: float = CLOCK_START) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClassifier:
    """Classifier double replaying queued answers.

    Each queued item is a dict validated through the requested output model, or
    an exception to raise. ``delay`` advances the clock as if the call took that
    long.
    """

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.calls: list[dict[str, Any]] = []
        self._queue: list[tuple[dict[str, Any] | Exception, float]] = []

    def queue(self, answer: dict[str, Any] | Exception, *, delay: float = 0.0) -> None:
        self._queue.append((answer, delay))

    async def classify(
        self,
        image: str,
        instruction: str,
        output_model: type[BaseModel],
        *,
        model: str | None = None,
    ) -> Any:
        self.calls.append(
            {
                "image": image,
                "instruction": instruction,
                "output_model": output_model,
                "model": model,
            }
        )
        if not self._queue:
            raise AssertionError("Classifier called without a queued answer")
        answer, delay = self._queue.pop(0)
        self.clock.advance(delay)
        if isinstance(answer, Exception):
            raise answer
        return output_model.model_validate(answer)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def make_account(session_factory: sessionmaker[Session]) -> Callable[[str, int], Account]:
    """Return a helper that persists an account with the given balance."""

    def _make(user_id: str, balance: int) -> Account:
        with session_factory() as session:
            account = Account(id=user_id, balance=balance)
            session.add(account)
            session.commit()
            return account

    return _make


@pytest.fixture()
def ledger(session_factory: sessionmaker[Session]) -> SqlBalanceLedger:
    return SqlBalanceLedger(session_factory)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def timer(clock: ManualClock) -> CycleTimer:
    return CycleTimer(
        active_seconds=15,
        dormant_seconds=27,
        expiry_seconds=3600,
        safety_buffer_seconds=1,
        clock=clock,
    )


@pytest.fixture()
def fake_classifier(clock: ManualClock) -> FakeClassifier:
    return FakeClassifier(clock)


@pytest.fixture()
def orchestrator(
    ledger: SqlBalanceLedger, fake_classifier: FakeClassifier, timer: CycleTimer
) -> MeteredCycleOrchestrator:
    return MeteredCycleOrchestrator(
        ledger=ledger,
        classifier=fake_classifier,
        timer=timer,
        costs=MeteringCosts(check_betting=1, read_betting=2, check_connection=3),
        precision=1,
        fast_model="fast-model",
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, orchestrator: MeteredCycleOrchestrator) -> Iterator[TestClient]:
    app.dependency_overrides[get_orchestrator_dep] = lambda: orchestrator
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_orchestrator_dep, None)
