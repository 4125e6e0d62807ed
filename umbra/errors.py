"""Exception types shared across the engine.

Lookups that find nothing return ``None`` rather than raising, so there is no
not-found exception here.
"""


class UmbraError(Exception):
    """Base class for engine errors."""


class MemoryValidationError(UmbraError):
    """A memory record was rejected by the personality schema."""

    def __init__(self, personality: str, errors: list[str]) -> None:
        self.personality = personality
        self.errors = errors
        super().__init__(f"Memory validation failed for {personality}: {'; '.join(errors)}")


class StorageError(UmbraError):
    """Persisting a record or artifact failed. The write did not happen."""


class UpstreamDegradation(UmbraError):
    """An external collaborator (search, delegation) reported an error."""
