"""Bounded-concurrency batch runner for production units."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from .config import PRODUCTION_CONCURRENCY
from .context import BatchContext
from .errors import FatalAbortError
from .models import (
    ProductionSettings,
    ProductionUnitResult,
    ProgressSnapshot,
    UnitSpec,
    UnitStatus,
)
from .unit_generator import GenerationOutcome, UnitGenerator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressSnapshot], None]


class _RunState:
    """Mutable bookkeeping of one run. Only touched from the event loop."""

    def __init__(self, total: int):
        self.slots: List[Optional[ProductionUnitResult]] = [None] * total
        self.abort_reason: Optional[str] = None
        self.charged = 0
        self.reserved = 0
        self.in_flight: List[str] = []


def _snapshot(state: _RunState) -> ProgressSnapshot:
    resolved = [r for r in state.slots if r is not None]
    succeeded = sum(1 for r in resolved if r.status == UnitStatus.SUCCEEDED)
    total = len(state.slots)
    return ProgressSnapshot(
        total_units=total,
        completed_units=succeeded,
        failed_units=len(resolved) - succeeded,
        pending_units=total - len(resolved) - len(state.in_flight),
        processing_units=list(state.in_flight),
        current_segment=state.in_flight[-1] if state.in_flight else None,
        overall_progress=round(len(resolved) * 100 / total) if total else 100,
        unit_results=resolved,
        errors=[
            f"{r.title} failed: {r.error_message}"
            for r in resolved
            if r.status == UnitStatus.FAILED
        ],
    )


def _failed(unit: UnitSpec, message: str, attempts: int = 0) -> ProductionUnitResult:
    return ProductionUnitResult(
        unit_index=unit.unit_index,
        segment_id=unit.segment_id,
        title=unit.title,
        status=UnitStatus.FAILED,
        error_message=message,
        attempts=attempts,
    )


def _to_result(unit: UnitSpec, outcome: GenerationOutcome) -> ProductionUnitResult:
    if not outcome.succeeded:
        return _failed(unit, str(outcome.error), outcome.attempts)

    artifact = outcome.artifact
    charged = unit.estimated_credits
    if artifact.credits is not None:
        charged = max(0, min(artifact.credits, unit.estimated_credits))
    return ProductionUnitResult(
        unit_index=unit.unit_index,
        segment_id=unit.segment_id,
        title=unit.title,
        status=UnitStatus.SUCCEEDED,
        artifact_url=artifact.url,
        duration_seconds=artifact.duration_seconds,
        credits_charged=charged,
        attempts=outcome.attempts,
    )


class BatchOrchestrator:
    """Run every unit of a batch through a fixed-size worker pool.

    Results keep input order. A failed unit never cancels its siblings; only
    a fatal abort (cancellation, deadline, or running past ``budget``) stops
    admission, and then every unit not yet admitted is reported as failed
    with an ``aborted`` reason. In-flight units always finish.
    """

    def __init__(
        self,
        generator: UnitGenerator,
        concurrency: int = PRODUCTION_CONCURRENCY,
    ):
        self.generator = generator
        self.concurrency = max(1, concurrency)
        # Thread pool executor for blocking backend calls
        self._executor = ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="unit-generator"
        )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def _admit(
        self,
        unit: UnitSpec,
        state: _RunState,
        context: Optional[BatchContext],
        budget: Optional[int],
    ) -> None:
        if state.abort_reason:
            raise FatalAbortError(state.abort_reason)
        if context is not None:
            context.check()
        if budget is not None:
            committed = state.charged + state.reserved + unit.estimated_credits
            if committed > budget:
                raise FatalAbortError("insufficient credits for remaining units")

    async def run(
        self,
        units: List[UnitSpec],
        settings: ProductionSettings,
        context: Optional[BatchContext] = None,
        budget: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProgressSnapshot:
        """Generate all units and return the final, fully resolved snapshot."""
        state = _RunState(len(units))
        semaphore = asyncio.Semaphore(self.concurrency)
        loop = asyncio.get_running_loop()

        def publish() -> None:
            if on_progress is not None:
                try:
                    on_progress(_snapshot(state))
                except Exception:
                    logger.exception("Progress callback failed")

        async def run_unit(position: int, unit: UnitSpec) -> None:
            async with semaphore:
                try:
                    self._admit(unit, state, context, budget)
                except FatalAbortError as e:
                    if state.abort_reason is None:
                        logger.warning(
                            f"Stopping admission at {unit.segment_id}: {e.reason}"
                        )
                    state.abort_reason = e.reason
                    state.slots[position] = _failed(unit, str(e))
                    publish()
                    return

                state.reserved += unit.estimated_credits
                state.in_flight.append(unit.segment_id)
                publish()
                try:
                    outcome = await loop.run_in_executor(
                        self._executor,
                        self.generator.generate,
                        unit,
                        settings,
                        context,
                    )
                    result = _to_result(unit, outcome)
                except Exception as e:
                    logger.exception(f"Worker failed running {unit.segment_id}")
                    result = _failed(unit, str(e) or type(e).__name__)
                finally:
                    state.reserved -= unit.estimated_credits
                    state.in_flight.remove(unit.segment_id)

                state.charged += result.credits_charged
                state.slots[position] = result
                publish()

        logger.info(
            f"Running {len(units)} unit(s) with concurrency {self.concurrency}"
        )
        await asyncio.gather(*(run_unit(i, u) for i, u in enumerate(units)))

        snapshot = _snapshot(state)
        logger.info(
            f"Batch finished: {snapshot.completed_units} succeeded, "
            f"{snapshot.failed_units} failed of {snapshot.total_units}"
        )
        return snapshot
