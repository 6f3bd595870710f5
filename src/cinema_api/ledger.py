"""Credit ledger: pre-flight check, post-run deduction, deferred reconciliation."""

import logging
import threading
from typing import List, Optional, Protocol, Union

from . import storage
from .errors import InsufficientCreditsError, LedgerUnavailableError
from .models import DeductionDeferred, DeductionResult

logger = logging.getLogger(__name__)

DEFERRED_NOTE = "Credit deduction delayed - will be processed later"


class CreditStore(Protocol):
    """Protocol for credit stores."""

    def get_balance(self, user_id: str) -> int:
        ...

    def deduct(
        self, user_id: str, amount: int, memo: str, ref_id: str, category: str
    ) -> DeductionResult:
        """
        Raises:
            LedgerUnavailableError: store unreachable.
            InsufficientCreditsError: balance below ``amount``.
        """
        ...


class CreditLedger:
    """Reads a user's balance once before a batch and writes it once after."""

    def __init__(self, store: Optional[CreditStore] = None):
        self.store = store if store is not None else storage
        self._deferred: List[DeductionDeferred] = []
        self._lock = threading.Lock()

    def balance(self, user_id: str) -> int:
        """Current balance.

        Raises:
            LedgerUnavailableError: store unreachable.
        """
        return self.store.get_balance(user_id)

    def check_sufficient(self, user_id: str, required_credits: int) -> bool:
        return self.balance(user_id) >= required_credits

    def deduct(
        self,
        user_id: str,
        amount: int,
        description: str,
        project_id: str,
        category: str,
        reference_id: str,
    ) -> Union[DeductionResult, DeductionDeferred]:
        """Charge a finished batch.

        An unreachable store does not fail the caller: the deduction is queued
        and a ``DeductionDeferred`` is returned instead.
        """
        try:
            result = self.store.deduct(user_id, amount, description, reference_id, category)
        except LedgerUnavailableError as e:
            deferred = DeductionDeferred(
                user_id=user_id,
                amount=amount,
                description=description,
                project_id=project_id,
                category=category,
                reference_id=reference_id,
                reason=str(e),
            )
            with self._lock:
                self._deferred.append(deferred)
            logger.warning(
                f"Deferred deduction of {amount} credits for user {user_id} "
                f"({reference_id}): {e}"
            )
            return deferred

        logger.info(
            f"Deducted {amount} credits from user {user_id} ({reference_id}), "
            f"{result.credits_remaining} remaining"
        )
        return result

    @property
    def pending(self) -> List[DeductionDeferred]:
        with self._lock:
            return list(self._deferred)

    def reconcile_deferred(self) -> List[DeductionResult]:
        """Replay queued deductions; those still failing stay queued.

        A replay that now hits an insufficient balance is dropped and logged.
        """
        with self._lock:
            queued, self._deferred = self._deferred, []

        settled: List[DeductionResult] = []
        still_pending: List[DeductionDeferred] = []
        for item in queued:
            try:
                settled.append(
                    self.store.deduct(
                        item.user_id,
                        item.amount,
                        item.description,
                        item.reference_id,
                        item.category,
                    )
                )
            except LedgerUnavailableError as e:
                still_pending.append(item.model_copy(update={"reason": str(e)}))
            except InsufficientCreditsError as e:
                logger.error(
                    f"Dropping deferred deduction {item.reference_id} for user "
                    f"{item.user_id}: {e}"
                )

        with self._lock:
            self._deferred = still_pending + self._deferred
        if settled:
            logger.info(f"Reconciled {len(settled)} deferred deduction(s)")
        return settled
