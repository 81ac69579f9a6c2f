"""
Settlement exceptions.

Categorized by handling strategy: block-integrity errors abort the whole
settlement and are retried on the next tick, participant-level errors are
recovered locally.
"""

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class SettlementError(Exception):
    """Base class for block settlement failures."""

    pass


class TransientStoreError(SettlementError):
    """Store I/O or timeout while settling; safe to retry on the next tick."""

    pass


class DuplicateSettlementError(SettlementError):
    """Block number already settled (race or retried commit)."""

    def __init__(self, block_number: int) -> None:
        self.block_number = block_number
        super().__init__(f"Block #{block_number} is already settled")


class MultiplierResolutionError(SettlementError):
    """Malformed bonus data for one participant."""

    def __init__(self, participant_id: int, reason: str) -> None:
        self.participant_id = participant_id
        self.reason = reason
        super().__init__(
            f"Cannot resolve multiplier for participant {participant_id}: {reason}"
        )


class InsufficientBalanceError(Exception):
    """Spend rejected because the balance does not cover the amount."""

    def __init__(self, participant_id: int, amount: object) -> None:
        self.participant_id = participant_id
        self.amount = amount
        super().__init__(
            f"Participant {participant_id} cannot spend {amount}: insufficient balance"
        )


# Store errors that abort a settlement without leaving a trace
TRANSIENT_STORE_ERRORS = (
    OperationalError,  # Connection drops, lock timeouts
    InterfaceError,    # Driver lost its connection
    PoolTimeoutError,  # No pooled connection available
    TimeoutError,      # Settlement exceeded its time budget
    ConnectionError,
)


def is_transient_store_error(exc: BaseException) -> bool:
    """
    Check if exception should abort settlement and be retried later.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a transient store failure
    """
    return isinstance(exc, TRANSIENT_STORE_ERRORS)
