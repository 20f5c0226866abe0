"""Shared test fixtures — an in-memory ledger store and the engines built on it."""

import pytest

from src.tc_account.domain.transfer import TransferEngine
from src.tc_booking.domain.state_machine import BookingStateMachine
from src.tc_ledger.application.atomic import AtomicRunner
from src.tc_ledger.infrastructure.memory_store import InMemoryLedgerStore
from tests.factories import Seeder


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def runner(store: InMemoryLedgerStore) -> AtomicRunner:
    return AtomicRunner(store, max_attempts=3, wait_min=0, wait_max=0)


@pytest.fixture
def transfers(runner: AtomicRunner) -> TransferEngine:
    return TransferEngine(runner)


@pytest.fixture
def machine(runner: AtomicRunner, transfers: TransferEngine) -> BookingStateMachine:
    return BookingStateMachine(runner, transfers)


@pytest.fixture
def seed(store: InMemoryLedgerStore) -> Seeder:
    return Seeder(store)
