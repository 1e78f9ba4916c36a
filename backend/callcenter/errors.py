"""Domain exceptions for the intake pipeline and call lifecycle."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """A single offending input field."""

    field: str
    message: str


class CallCenterError(Exception):
    """Base exception for call center errors."""

    pass


class CallValidationError(CallCenterError):
    """Malformed, missing or out-of-range input. Raised before any external call."""

    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        fields = ", ".join(e.field for e in errors)
        super().__init__(f"Invalid fields: {fields}")


class ClassificationUnavailable(CallCenterError):
    """Provider failure, timeout or unparsable response. Never leaves the adapter."""

    pass


class AllocationExhausted(CallCenterError):
    """No free call code found within the retry budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No free call code after {attempts} attempts")


class CodeCollision(CallCenterError):
    """Insert rejected because the code is already held by a live call."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Call code {code} is already in use")


class CallNotFound(CallCenterError):
    """Lookup or write against a missing (or soft-deleted) call."""

    def __init__(self, key: int | str):
        self.key = key
        super().__init__(f"Call {key} not found")


class InvalidTransition(CallCenterError):
    """Status change not permitted by the call lifecycle."""

    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        message = f"Cannot move call from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PersistenceFailure(CallCenterError):
    """Store-layer failure other than a handled code collision."""

    pass
