class GenerationError(Exception):
    """Base exception for a failed cascade generation attempt."""

    pass


class MalformedOutputError(GenerationError):
    """Generator output could not be parsed into a cascade draft."""

    def __init__(self, message: str, raw_output: str | None = None):
        super().__init__(message)
        self.raw_output = raw_output


class GenerationTimeoutError(GenerationError):
    """Generator call exceeded its time limit."""

    pass


class CascadeRejectedError(GenerationError):
    """Draft failed validation; carries every reported violation."""

    def __init__(self, errors: list[str]):
        super().__init__(f"Cascade rejected with {len(errors)} violation(s): {'; '.join(errors[:3])}")
        self.errors = errors


class EventNotFoundError(GenerationError):
    """Trigger event reference does not resolve to a known event."""

    pass


class ClosedEventError(GenerationError):
    """Trigger event is closed and cannot seed a cascade."""

    pass


class EmptyEventPoolError(GenerationError):
    """No active events were available to build cascades from."""

    pass
