class MessagingError(Exception):
    """Base exception for queue transport errors."""


class MessageDecodeError(MessagingError):
    """Raised when a delivered payload is not a valid pipeline event."""


class UnknownQueueError(MessagingError):
    """Raised when publishing to or consuming from a queue that is not configured."""
