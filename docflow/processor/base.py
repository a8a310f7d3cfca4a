from abc import ABC, abstractmethod

from docflow.messaging.events import Event


class BaseProcessor(ABC):
    """Handles one decoded event. Raising marks the message as failed."""

    @abstractmethod
    def process(self, event: Event) -> None:
        raise NotImplementedError
