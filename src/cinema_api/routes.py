"""API routes for the batch production pipeline."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from .controller import ProductionController
from .errors import InsufficientCreditsError, LedgerUnavailableError, ValidationError
from .models import (
    BatchProductionResult,
    CreditBalanceResponse,
    ProduceBatchRequest,
    ProductionKind,
    ProductionRequest,
    ProductionSettings,
    ReconcileResponse,
)
from .storage import get_production

logger = logging.getLogger(__name__)

router = APIRouter()

_controller: Optional[ProductionController] = None


def get_controller() -> ProductionController:
    """Get the process-wide production controller."""
    global _controller
    if _controller is None:
        _controller = ProductionController()
    return _controller


@router.post("/produce-batch")
async def produce_batch(
    request: ProduceBatchRequest,
    x_user_id: str = Header(..., description="Authenticated user id"),
    controller: ProductionController = Depends(get_controller),
):
    """Produce (or just estimate) a series or a movie."""
    project_id = request.project_id.strip()
    if not project_id:
        raise HTTPException(status_code=400, detail="project_id is required")

    if request.type == ProductionKind.SERIES:
        config = request.series_config
    else:
        config = request.movie_config
    if config is None:
        raise HTTPException(
            status_code=400,
            detail=f"{request.type.value}_config is required for {request.type.value} production",
        )

    production = ProductionRequest(
        project_id=project_id,
        user_id=x_user_id,
        kind=request.type,
        config=config,
        settings=request.settings or ProductionSettings(),
        estimate_only=request.estimate_only,
    )

    try:
        if request.type == ProductionKind.SERIES:
            result = await controller.produce_series(production)
        else:
            result = await controller.produce_movie(production)
    except ValidationError as e:
        raise HTTPException(
            status_code=400, detail={"field": e.field, "error": e.reason}
        )
    except InsufficientCreditsError as e:
        raise HTTPException(
            status_code=402,
            detail={"error": str(e), "estimated_credits": e.required},
        )
    except LedgerUnavailableError as e:
        logger.error(f"Credit store unavailable for user {x_user_id}: {e}")
        raise HTTPException(
            status_code=503,
            detail="Credit service unavailable. Please try again shortly.",
        )

    if isinstance(result, BatchProductionResult) and not result.success:
        return JSONResponse(status_code=500, content=result.model_dump(mode="json"))
    return result


@router.get("/productions/{production_id}", response_model=BatchProductionResult)
async def get_production_by_id(
    production_id: str,
    x_user_id: str = Header(..., description="Authenticated user id"),
):
    """Get a finished production."""
    record = get_production(production_id)
    if not record or record["user_id"] != x_user_id:
        raise HTTPException(
            status_code=404, detail=f"Production {production_id} not found"
        )
    return record["result"]


@router.get("/credits", response_model=CreditBalanceResponse)
async def get_credits(
    x_user_id: str = Header(..., description="Authenticated user id"),
    controller: ProductionController = Depends(get_controller),
):
    """Get the caller's credit balance."""
    try:
        balance = controller.ledger.balance(x_user_id)
    except LedgerUnavailableError:
        raise HTTPException(status_code=503, detail="Credit service unavailable")
    return CreditBalanceResponse(user_id=x_user_id, credits_remaining=balance)


@router.post("/credits/reconcile", response_model=ReconcileResponse)
async def reconcile_credits(
    controller: ProductionController = Depends(get_controller),
):
    """Replay credit deductions deferred during a store outage."""
    settled = controller.ledger.reconcile_deferred()
    return ReconcileResponse(settled=settled, pending=len(controller.ledger.pending))
