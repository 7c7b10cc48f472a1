"""Exceptions raised by the rating store and battle sequencer."""


class RankerError(Exception):
    """Base class for ranker errors."""


class PreconditionError(RankerError, ValueError):
    """Operation rejected because its preconditions do not hold.

    Raised before any state is touched, so the caller can keep going.
    """


class PersistenceError(RankerError):
    """The storage collaborator failed.

    In-memory ratings and queue state are already updated when this is raised.
    """

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause
