"""Exception hierarchy for the feed relay.

Run-level failures (fetch, parse, checkpoint read) end a run in the FAILED
state without touching the checkpoint. Dispatch failures are recovered per
item. Checkpoint write failures are logged and reported; the next run
simply reprocesses the same batch.
"""


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(RelayError):
    """Configuration is missing or invalid."""


class FetchError(RelayError):
    """Feed document could not be fetched (network error or non-2xx)."""


class ParseError(RelayError):
    """Feed document could not be parsed into items."""


class CheckpointReadError(RelayError):
    """Stored checkpoint could not be read."""


class CheckpointWriteError(RelayError):
    """Checkpoint could not be persisted."""


class DispatchError(RelayError):
    """A single webhook send failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
