class ResolutionError(Exception):
    """Base exception for the resolution pipeline."""

    pass


class QueueEntryNotFoundError(ResolutionError):
    """No resolution queue entry matches the given event reference."""

    pass


class InvalidOutcomeError(ResolutionError, ValueError):
    """Outcome is not one of the binary values yes/no."""

    pass
