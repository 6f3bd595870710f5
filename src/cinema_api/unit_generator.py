"""Generation of a single production unit with per-unit retry."""

import logging
import time
from typing import Callable, NamedTuple, Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    wait_fixed,
)

from .config import (
    GENERATION_TIMEOUT_SECONDS,
    UNIT_MAX_ATTEMPTS,
    UNIT_RETRY_BACKOFF_SECONDS,
)
from .context import BatchContext
from .errors import TransientGenerationError, UnitGenerationError
from .generation_provider import GenerationBackend
from .models import GeneratedArtifact, ProductionSettings, UnitSpec

logger = logging.getLogger(__name__)


class GenerationOutcome(NamedTuple):
    """Either an artifact or a terminal error for one unit."""

    artifact: Optional[GeneratedArtifact]
    error: Optional[UnitGenerationError]
    attempts: int

    @property
    def succeeded(self) -> bool:
        return self.artifact is not None


class UnitGenerator:
    """Produce one unit through the backend.

    Transient errors are retried up to ``max_attempts`` times with a fixed
    backoff; any other error fails the unit on the spot. ``generate`` never
    raises.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        max_attempts: int = UNIT_MAX_ATTEMPTS,
        backoff_seconds: float = UNIT_RETRY_BACKOFF_SECONDS,
        timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.backend = backend
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep

    def _call_timeout(self, context: Optional[BatchContext]) -> float:
        timeout = self.timeout_seconds
        remaining = context.remaining() if context else None
        if remaining is not None:
            if remaining <= 0:
                raise TransientGenerationError("batch deadline exceeded")
            timeout = min(timeout, remaining)
        return timeout

    def _generate_once(
        self,
        unit: UnitSpec,
        settings: ProductionSettings,
        context: Optional[BatchContext],
    ) -> GeneratedArtifact:
        timeout = self._call_timeout(context)
        try:
            result = self.backend.generate(unit, settings, timeout)
        except UnitGenerationError:
            raise
        except Exception as e:
            logger.exception(f"Backend crashed generating {unit.segment_id}")
            raise UnitGenerationError(str(e) or type(e).__name__) from e

        if not isinstance(result, dict) or not result.get("url"):
            raise UnitGenerationError(f"Backend returned no artifact URL for {unit.segment_id}")
        try:
            return GeneratedArtifact(
                url=result["url"],
                duration_seconds=result.get("duration") or unit.duration_seconds,
                credits=result.get("credits"),
                raw=result.get("raw") or {},
            )
        except ValueError as e:
            raise UnitGenerationError(
                f"Backend returned a malformed artifact for {unit.segment_id}: {e}"
            ) from e

    def generate(
        self,
        unit: UnitSpec,
        settings: ProductionSettings,
        context: Optional[BatchContext] = None,
    ) -> GenerationOutcome:
        """Generate one unit, reporting failure as a value."""

        def deadline_passed(retry_state) -> bool:
            return context is not None and context.expired()

        retryer = Retrying(
            stop=stop_any(stop_after_attempt(self.max_attempts), deadline_passed),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception_type(TransientGenerationError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

        attempts = 0
        try:
            for attempt in retryer:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    artifact = self._generate_once(unit, settings, context)
        except UnitGenerationError as e:
            logger.warning(
                f"Unit {unit.segment_id} failed after {attempts} attempt(s): {e}"
            )
            return GenerationOutcome(artifact=None, error=e, attempts=attempts)

        logger.info(f"Unit {unit.segment_id} generated: {artifact.url}")
        return GenerationOutcome(artifact=artifact, error=None, attempts=attempts)
