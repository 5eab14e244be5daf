"""Exception hierarchy for the cache and program cycle layer.

Lookups never raise for a missing id; they return ``None``. Exceptions are
reserved for rejected mutations (``ValidationError``) and for a storage
backend that cannot be read or written (``StorageUnavailableError``).
"""


class LifterError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(LifterError):
    """A program or cycle operation violated a date or state invariant.

    The message is meant to be shown to the user as is.
    """


class CycleOverlapError(ValidationError):
    """The requested date range overlaps an existing cycle."""


class CycleActivationError(ValidationError):
    """The cycle cannot be activated on the requested date."""


class CycleStateError(ValidationError):
    """The cycle is in a state that does not allow the transition."""


class UnknownCycleError(ValidationError):
    """A mutation referenced a cycle id the program does not have."""

    def __init__(self, cycle_id: str):
        super().__init__(f"Cycle not found: {cycle_id}")
        self.cycle_id = cycle_id


class UnknownProgramError(ValidationError):
    """A mutation referenced a program id that is not stored."""

    def __init__(self, program_id: str):
        super().__init__(f"Program not found: {program_id}")
        self.program_id = program_id


class StorageUnavailableError(LifterError):
    """The durable storage backend failed to read or write."""

    def __init__(self, operation: str, namespace: str, message: str = ""):
        detail = f": {message}" if message else ""
        super().__init__(f"Storage unavailable during {operation} on '{namespace}'{detail}")
        self.operation = operation
        self.namespace = namespace
