"""Shared fixtures and test doubles."""

import sys
import threading
import time
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))  # noqa: E402

from cinema_api import storage  # noqa: E402
from cinema_api.controller import ProductionController  # noqa: E402
from cinema_api.errors import InsufficientCreditsError, LedgerUnavailableError  # noqa: E402
from cinema_api.ledger import CreditLedger  # noqa: E402
from cinema_api.models import (  # noqa: E402
    DeductionResult,
    EpisodeSpec,
    SeriesConfig,
    UnitKind,
    UnitSpec,
)
from cinema_api.orchestrator import BatchOrchestrator  # noqa: E402
from cinema_api.unit_generator import UnitGenerator  # noqa: E402


class FakeBackend:
    """Scripted generation backend that records calls and concurrency.

    ``script`` maps a segment id to an exception, or to a list of exceptions
    (``None`` meaning success) consumed one per call.
    """

    def __init__(self, script=None, delays=None, credits=None):
        self.script = {k: list(v) if isinstance(v, list) else v for k, v in (script or {}).items()}
        self.delays = delays or {}
        self.credits = credits
        self.calls = []
        self.completed = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def generate(self, unit, settings, timeout):
        with self._lock:
            self.calls.append(unit.segment_id)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delays.get(unit.segment_id, 0))
            step = self.script.get(unit.segment_id)
            if isinstance(step, list):
                step = step.pop(0) if step else None
            if step is not None:
                raise step
            result = {
                "url": f"test://{unit.segment_id}.mp4",
                "duration": unit.duration_seconds,
                "raw": {},
            }
            if self.credits is not None:
                result["credits"] = self.credits
            return result
        finally:
            with self._lock:
                self.active -= 1
                self.completed.append(unit.segment_id)


class FakeStore:
    """Credit store double with call counting and simulated outages."""

    def __init__(self, balance=10_000, balance_available=True, deduct_available=True):
        self.balance = balance
        self.balance_available = balance_available
        self.deduct_available = deduct_available
        self.balance_calls = 0
        self.deduct_calls = []

    def get_balance(self, user_id):
        self.balance_calls += 1
        if not self.balance_available:
            raise LedgerUnavailableError("store down")
        return self.balance

    def deduct(self, user_id, amount, memo, ref_id, category):
        self.deduct_calls.append((user_id, amount, memo, ref_id, category))
        if not self.deduct_available:
            raise LedgerUnavailableError("store down")
        if self.balance < amount:
            raise InsufficientCreditsError(required=amount, available=self.balance)
        self.balance -= amount
        return DeductionResult(
            user_id=user_id,
            amount=amount,
            reference_id=ref_id,
            credits_remaining=self.balance,
        )


@pytest.fixture(autouse=True)
def clear_storage():
    """Clear storage before each test."""
    storage.clear()
    yield
    storage.clear()


@pytest.fixture
def sleeps():
    """Record backoff sleeps instead of sleeping."""
    return []


@pytest.fixture
def make_generator(sleeps):
    def _make(backend, max_attempts=2, backoff_seconds=0.5):
        return UnitGenerator(
            backend,
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
            timeout_seconds=30,
            sleep=sleeps.append,
        )

    return _make


@pytest.fixture
def make_controller(make_generator):
    def _make(backend, store=None, concurrency=3):
        orchestrator = BatchOrchestrator(make_generator(backend), concurrency=concurrency)
        ledger = CreditLedger(store if store is not None else FakeStore())
        return ProductionController(orchestrator, ledger, batch_timeout_seconds=None)

    return _make


@pytest.fixture
def series_config():
    def _make(count=5, duration=60, **overrides):
        episodes = [
            EpisodeSpec(
                episode_number=i,
                title=f"Chapter {i}",
                synopsis=f"The keeper faces storm number {i}.",
            )
            for i in range(1, count + 1)
        ]
        fields = {
            "title": "The Lighthouse",
            "synopsis": "A keeper guards a light on a haunted coast.",
            "episodes": episodes,
            "episode_duration_cap_seconds": duration,
        }
        fields.update(overrides)
        return SeriesConfig(**fields)

    return _make


@pytest.fixture
def make_units():
    def _make(count=5, estimated_credits=177):
        return [
            UnitSpec(
                unit_index=i,
                kind=UnitKind.EPISODE,
                segment_id=f"episode-{i + 1}",
                title=f"S1E{i + 1}: Chapter {i + 1}",
                prompt=f"Chapter {i + 1}",
                duration_seconds=60,
                estimated_credits=estimated_credits,
            )
            for i in range(count)
        ]

    return _make
