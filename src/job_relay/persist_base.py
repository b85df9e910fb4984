"""Abstract base for queue persistence backends.

Defines the interface the relay needs from a queue server: queue lifecycle,
enqueueing and dequeueing jobs, acknowledging them by archive or delete, and
metrics. PersistPGMQ provides the PostgreSQL implementation.
"""

from abc import ABC, abstractmethod
from typing import Any

from pgmq import Message

from job_relay.queue_model_dto import JobDTO


class PersistBase(ABC):
    """Abstract base class for queue persistence.

    Options (e.g. visibility_timeout) are backend-specific.
    """

    @abstractmethod
    def create_queue(self, queue_name: str) -> None:
        """Create a new queue if it does not exist."""

    @abstractmethod
    def list_queues(self) -> list[str]:
        """Return the names of all existing queues."""

    @abstractmethod
    def destroy_queue(self, queue_name: str) -> None:
        """Delete the queue and its data."""

    @abstractmethod
    def purge_queue(self, queue_name: str) -> int:
        """Remove all messages from the queue. Returns the number purged."""

    @abstractmethod
    def enqueue(self, job: JobDTO) -> int:
        """Append a job to the queue named in job.meta. Returns the message ID."""

    @abstractmethod
    def dequeue(self, queue_name: str, options: dict[str, Any] | None = None) -> Message | None:
        """Read one message from the queue. Returns None if empty."""

    @abstractmethod
    def delete(self, queue_name: str, id: int) -> None:
        """Permanently delete the message with the given ID from the queue."""

    @abstractmethod
    def archive(self, queue_name: str, id: int) -> None:
        """Move the message from the main queue to the archive."""

    @abstractmethod
    def metrics(self, queue_name: str) -> Any:
        """Return metrics for the queue (e.g. queue length, message ages)."""

    @abstractmethod
    def close(self) -> None:
        """Release connections held by the backend."""
