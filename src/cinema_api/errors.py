"""Error taxonomy for the batch production pipeline.

Two lanes:

- fail fast: ``ValidationError``, ``InsufficientCreditsError`` and a ledger
  outage at pre-flight are raised before any generation or spend.
- degrade gracefully: ``UnitGenerationError`` and any billing error after
  generation are turned into values (a failed unit result, a deferred
  deduction, an error note on the result) and never discard finished work.
"""

from typing import Optional


class ProductionError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(ProductionError):
    """Malformed or out-of-bounds production config."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class InsufficientCreditsError(ProductionError):
    """User balance cannot cover the requested production."""

    def __init__(self, required: int, available: Optional[int] = None):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credits. This production requires approximately "
            f"{required} credits."
        )


class UnitGenerationError(ProductionError):
    """A single unit could not be generated. Not retried."""

    transient = False


class TransientGenerationError(UnitGenerationError):
    """Network failure, timeout, rate limit or backend 5xx."""

    transient = True


class InvalidUnitError(UnitGenerationError):
    """The backend rejected the unit spec itself."""


class ContentPolicyError(UnitGenerationError):
    """The backend refused the prompt on content-policy grounds."""


class LedgerUnavailableError(ProductionError):
    """The credit store could not be reached."""


class FatalAbortError(ProductionError):
    """Stop admitting units: cancellation, deadline or credit exhaustion."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"aborted: {reason}")
