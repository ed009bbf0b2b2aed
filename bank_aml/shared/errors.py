"""Exception hierarchy for the screening pipeline.

Adapters translate driver exceptions into these types at their boundary so
that workers and HTTP handlers only ever reason about screening errors.
"""


class ScreeningError(Exception):
    """Base exception for all screening pipeline errors."""


class InvalidTransactionError(ScreeningError, ValueError):
    """Raised when a submitted transaction fails validation."""


class StoreError(ScreeningError):
    """Base exception for primary store failures."""


class StoreLockedError(StoreError):
    """Raised when the primary store stays locked after all retry attempts."""


class StoreUnavailableError(StoreError):
    """Raised on schema or connectivity failures of the primary store."""


class DuplicateProcessingIdError(StoreError):
    """Raised when a processing id is saved twice."""


class CorruptRecordError(StoreError):
    """Raised when a stored row can no longer be rebuilt into a transaction."""


class BusUnavailableError(ScreeningError):
    """Raised when a job event cannot be published to the event bus."""


class CacheUnavailableError(ScreeningError):
    """Raised when the fast store cannot be reached or returns an error."""


class TransactionNotFoundError(ScreeningError, LookupError):
    """Raised when no submission exists for a processing id."""


class PoisonMessageError(ScreeningError):
    """Raised when a bus message cannot be decoded into a job event."""
