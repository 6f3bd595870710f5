"""Entry point of the batch production pipeline."""

import asyncio
import logging
import uuid
from typing import Optional, Tuple, Union

from . import storage
from .config import BATCH_TIMEOUT_SECONDS
from .context import BatchContext
from .credits import estimate_movie_credits, estimate_series_credits
from .errors import InsufficientCreditsError, ProductionError, ValidationError
from .generation_provider import get_backend
from .ledger import DEFERRED_NOTE, CreditLedger
from .models import (
    BatchProductionResult,
    CreditEstimate,
    DeductionDeferred,
    EstimateResult,
    MovieConfig,
    ProductionKind,
    ProductionRequest,
    SeriesConfig,
    UnitStatus,
    VideoSummary,
)
from .orchestrator import BatchOrchestrator, ProgressCallback
from .planner import (
    plan_movie_units,
    plan_series_units,
    quick_movie_config,
    quick_series_config,
)
from .unit_generator import UnitGenerator
from .validator import validate_movie_config, validate_series_config

logger = logging.getLogger(__name__)

Config = Union[SeriesConfig, MovieConfig]

_UNIT_NOUN = {ProductionKind.SERIES: "episodes", ProductionKind.MOVIE: "acts"}


class ProductionController:
    """Sequence validation, estimation, credit checks, generation and billing.

    Validation and credit errors are raised before anything is generated or
    charged. Once generation starts the caller always gets a
    ``BatchProductionResult``.
    """

    def __init__(
        self,
        orchestrator: Optional[BatchOrchestrator] = None,
        ledger: Optional[CreditLedger] = None,
        batch_timeout_seconds: Optional[float] = BATCH_TIMEOUT_SECONDS,
    ):
        self.orchestrator = orchestrator or BatchOrchestrator(
            UnitGenerator(get_backend())
        )
        self.ledger = ledger or CreditLedger()
        self.batch_timeout_seconds = batch_timeout_seconds

    def estimate(self, kind: ProductionKind, config: Config) -> Tuple[Config, CreditEstimate]:
        """Validate a config and price it. Generates and bills nothing."""
        expected = SeriesConfig if kind == ProductionKind.SERIES else MovieConfig
        if not isinstance(config, expected):
            raise ValidationError("config", f"{kind.value} production requires a {expected.__name__}")
        if kind == ProductionKind.SERIES:
            validated = validate_series_config(config)
            return validated, estimate_series_credits(validated)
        validated = validate_movie_config(config)
        return validated, estimate_movie_credits(validated)

    async def produce_series(
        self,
        request: ProductionRequest,
        context: Optional[BatchContext] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Union[EstimateResult, BatchProductionResult]:
        """Produce every episode of a series."""
        if request.kind != ProductionKind.SERIES:
            raise ValueError("produce_series requires a series request")
        return await self._produce(request, context, on_progress)

    async def produce_movie(
        self,
        request: ProductionRequest,
        context: Optional[BatchContext] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Union[EstimateResult, BatchProductionResult]:
        """Produce every act of a movie."""
        if request.kind != ProductionKind.MOVIE:
            raise ValueError("produce_movie requires a movie request")
        return await self._produce(request, context, on_progress)

    async def quick_series(
        self,
        project_id: str,
        user_id: str,
        title: str,
        synopsis: str,
        episode_count: int = 6,
        episode_duration: float = 60,
        genre: str = "drama",
    ) -> Union[EstimateResult, BatchProductionResult]:
        """Produce a series from just a title and synopsis."""
        request = ProductionRequest(
            project_id=project_id,
            user_id=user_id,
            kind=ProductionKind.SERIES,
            config=quick_series_config(title, synopsis, episode_count, episode_duration, genre),
        )
        return await self.produce_series(request)

    async def quick_movie(
        self,
        project_id: str,
        user_id: str,
        title: str,
        synopsis: str,
        target_duration_minutes: float = 5,
        genre: str = "drama",
    ) -> Union[EstimateResult, BatchProductionResult]:
        """Produce a default three-act movie from a title and synopsis."""
        request = ProductionRequest(
            project_id=project_id,
            user_id=user_id,
            kind=ProductionKind.MOVIE,
            config=quick_movie_config(title, synopsis, target_duration_minutes, genre),
        )
        return await self.produce_movie(request)

    async def _produce(
        self,
        request: ProductionRequest,
        context: Optional[BatchContext],
        on_progress: Optional[ProgressCallback],
    ) -> Union[EstimateResult, BatchProductionResult]:
        kind = request.kind
        config, estimate = self.estimate(kind, request.config)

        if request.estimate_only:
            return EstimateResult(
                kind=kind,
                estimated_credits=estimate.total,
                per_unit=estimate.per_unit,
                breakdown=estimate.breakdown,
            )

        # Credit store calls may block on I/O
        loop = asyncio.get_running_loop()
        balance = await loop.run_in_executor(None, self.ledger.balance, request.user_id)
        if balance < estimate.total:
            logger.info(
                f"User {request.user_id} has {balance} credits, "
                f"{estimate.total} required for {kind.value} '{config.title}'"
            )
            raise InsufficientCreditsError(required=estimate.total, available=balance)

        if kind == ProductionKind.SERIES:
            units = plan_series_units(config, estimate)
        else:
            units = plan_movie_units(config, estimate)

        if context is None:
            context = BatchContext(self.batch_timeout_seconds)
        production_id = str(uuid.uuid4())
        logger.info(
            f"Production {production_id}: {kind.value} '{config.title}' with "
            f"{len(units)} unit(s), estimated {estimate.total} credits"
        )

        progress = await self.orchestrator.run(
            units,
            request.settings,
            context=context,
            budget=balance,
            on_progress=on_progress,
        )

        succeeded = [r for r in progress.unit_results if r.status == UnitStatus.SUCCEEDED]
        videos = [
            VideoSummary(
                segment_id=r.segment_id,
                title=r.title,
                video_url=r.artifact_url,
                duration_seconds=r.duration_seconds,
            )
            for r in succeeded
        ]
        credits_used = sum(r.credits_charged for r in succeeded)

        result = BatchProductionResult(
            success=bool(videos),
            production_id=production_id,
            kind=kind,
            title=config.title,
            videos=videos,
            total_duration_seconds=sum(v.duration_seconds for v in videos),
            total_credits_used=credits_used,
            progress=progress,
        )

        if not videos:
            result.error = f"No {_UNIT_NOUN[kind]} were successfully produced"
        elif credits_used > 0:
            label = "Series" if kind == ProductionKind.SERIES else "Movie"
            try:
                deduction = await loop.run_in_executor(
                    None,
                    self.ledger.deduct,
                    request.user_id,
                    credits_used,
                    f"{label} production: {config.title} "
                    f"({len(videos)} {_UNIT_NOUN[kind]})",
                    request.project_id,
                    "generation",
                    production_id,
                )
            except ProductionError as e:
                # Produced videos are kept even when billing fails
                logger.error(
                    f"Credit deduction of {credits_used} for production "
                    f"{production_id} failed: {e}"
                )
                result.error = f"Credit deduction failed: {e}"
            else:
                if isinstance(deduction, DeductionDeferred):
                    result.error = DEFERRED_NOTE
                else:
                    result.credits_remaining = deduction.credits_remaining

        storage.save_production(result, request.user_id, request.project_id)
        return result
