"""In-memory storage for credit balances, transactions, and productions."""

from typing import Dict, List, Optional
from datetime import datetime, timezone
import threading

from .config import DEFAULT_USER_CREDITS
from .errors import InsufficientCreditsError, LedgerUnavailableError
from .models import BatchProductionResult, DeductionResult


# In-memory storage
_balances: Dict[str, int] = {}  # keyed by user_id
_transactions: Dict[str, Dict] = {}  # keyed by reference_id
_productions: Dict[str, Dict] = {}  # keyed by production_id
_lock = threading.Lock()
_available = True


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ensure_available() -> None:
    if not _available:
        raise LedgerUnavailableError("Credit store is unavailable")


def set_available(available: bool) -> None:
    """Simulate a credit store outage (or recovery)."""
    global _available
    _available = available


def grant_credits(user_id: str, amount: int) -> int:
    """Add credits to a user and return the new balance."""
    _ensure_available()
    with _lock:
        balance = _balances.get(user_id, DEFAULT_USER_CREDITS) + amount
        _balances[user_id] = balance
    return balance


def get_balance(user_id: str) -> int:
    """Get the credit balance of a user."""
    _ensure_available()
    return _balances.get(user_id, DEFAULT_USER_CREDITS)


def deduct(
    user_id: str,
    amount: int,
    memo: str,
    ref_id: str,
    category: str,
) -> DeductionResult:
    """Deduct credits once per reference id.

    Replaying an already settled ``ref_id`` returns the original result
    without charging again.
    """
    _ensure_available()
    with _lock:
        existing = _transactions.get(ref_id)
        if existing:
            return DeductionResult(**existing["result"])

        balance = _balances.get(user_id, DEFAULT_USER_CREDITS)
        if balance < amount:
            raise InsufficientCreditsError(required=amount, available=balance)

        _balances[user_id] = balance - amount
        result = DeductionResult(
            user_id=user_id,
            amount=amount,
            reference_id=ref_id,
            credits_remaining=balance - amount,
        )
        _transactions[ref_id] = {
            "memo": memo,
            "category": category,
            "result": result.model_dump(),
            "created_at": _now(),
        }
    return result


def list_transactions(user_id: Optional[str] = None) -> List[Dict]:
    """List transactions, optionally for a single user."""
    return [
        {"reference_id": ref_id, **tx}
        for ref_id, tx in _transactions.items()
        if user_id is None or tx["result"]["user_id"] == user_id
    ]


def save_production(result: BatchProductionResult, user_id: str, project_id: str) -> None:
    """Save a finished production."""
    _productions[result.production_id] = {
        "user_id": user_id,
        "project_id": project_id,
        "result": result,
        "created_at": _now(),
    }


def get_production(production_id: str) -> Optional[Dict]:
    """Get production record by ID."""
    return _productions.get(production_id)


def clear() -> None:
    """Reset all storage."""
    global _available
    with _lock:
        _balances.clear()
        _transactions.clear()
        _productions.clear()
    _available = True
