"""
Application-level exceptions.

Nothing in the pipeline is fatal to the process: feed failures are logged and
skipped, analyzer failures degrade, not-found is returned as None. These
exceptions cover the few cases that do reach a caller.
"""


class HyperchainError(Exception):
    """Base class for all backend_hyperchain errors."""


class IngestionStartError(HyperchainError):
    """Ingestion could not be started (no sources, or a source failed to open)."""


class FeedFetchError(HyperchainError):
    """A block or transaction could not be fetched from the live feed."""

    def __init__(self, message: str, *, block_number: int | None = None) -> None:
        super().__init__(message)
        self.block_number = block_number


class StoreClosedError(HyperchainError):
    """Mutation attempted on an AggregationStore after close()."""


class SubscriptionClosedError(HyperchainError):
    """get() called on a closed broadcast subscription with nothing left to read."""
