class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class UnexpectedEventError(ProcessorError):
    """Raised when a processor receives an event type it does not handle."""
