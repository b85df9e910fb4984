"""Base handler interface for queue messages.

The relay CLI calls validate then handle on each message it dequeues.
"""

from abc import ABC, abstractmethod
from typing import Any


class BaseHandler(ABC):
    """Abstract base for queue message handlers.

    validate checks the message before any work is done. handle performs the
    actual work and returns its result.
    """

    @abstractmethod
    def validate(self, message: Any) -> None:
        """Validate the message; raise if invalid."""

    @abstractmethod
    def handle(self, message: Any) -> Any:
        """Process the message."""
