"""PostgreSQL-backed queue persistence using PGMQ.

Uses the pgmq library to store relay queues and jobs in PostgreSQL with
visibility timeouts, archiving, and metrics. Each relay endpoint gets its own
PersistPGMQ, so source and destination may live on different servers.
"""

import logging
from typing import Any
from urllib.parse import urlparse

from pgmq import Message, PGMQueue

from job_relay.persist_base import PersistBase
from job_relay.queue_model_dto import JobDTO

DEFAULT_PORT = 5432

logger = logging.getLogger(__name__)


class PersistPGMQ(PersistBase):
    """Queue persistence implementation using PGMQ (PostgreSQL Message Queue).

    Connects via a Postgres DSN and delegates to PGMQueue for create, send,
    read, archive, delete, and metrics.
    """

    def __init__(self, dsn: str, verbose: bool = False) -> None:
        """Connect to PostgreSQL using the given DSN."""
        parts = urlparse(str(dsn))
        # leave PGMQueue's defaults in place for anything the DSN omits
        credentials = {
            name: value
            for name, value in (("username", parts.username), ("password", parts.password))
            if value is not None
        }

        # noinspection PyTypeChecker
        self.queue = PGMQueue(
            host=parts.hostname or "localhost",
            port=str(parts.port or DEFAULT_PORT),
            database=parts.path.lstrip("/") or "postgres",
            verbose=verbose,
            log_filename="pgmq.log" if verbose else None,
            **credentials,
        )
        logger.debug("Connected to queue server %s", parts.hostname or "localhost")

    def enqueue(self, job: JobDTO) -> int:
        """Append the job to the queue named in job.meta.queue_name. Returns message ID."""
        message_id = self.queue.send(
            queue=job.meta.queue_name,
            message=job.model_dump(),
        )
        return message_id

    def dequeue(self, queue_name: str, options: dict[str, Any] | None = None) -> Message | None:
        """Read one message from the queue with the given visibility timeout (seconds)."""
        options = options or {}
        visibility_timeout = options.get("visibility_timeout", 300)
        return self.queue.read(
            queue=queue_name,
            vt=visibility_timeout,
        )

    def delete(self, queue_name: str, id: int) -> None:
        """Permanently delete the message with the given ID from the queue."""
        self.queue.delete(
            queue=queue_name,
            msg_id=id,
        )

    def archive(self, queue_name: str, id: int) -> None:
        """Move the message from the main queue to the archive."""
        self.queue.archive(
            queue=queue_name,
            msg_id=id,
        )

    def create_queue(self, queue_name: str) -> None:
        """Create a new queue."""
        self.queue.create_queue(queue_name)

    def destroy_queue(self, queue_name: str) -> None:
        """Drop the queue and its data."""
        self.queue.drop_queue(queue_name)

    def purge_queue(self, queue_name: str) -> int:
        """Remove all messages from the specified queue."""
        return self.queue.purge(queue_name)

    def list_queues(self) -> list[str]:
        """List all existing queues."""
        return self.queue.list_queues()

    def metrics(self, queue_name: str) -> Any:
        """Get metrics for the specified queue."""
        return self.queue.metrics(queue_name)

    def close(self) -> None:
        """Close the connection pool; call when done to avoid shutdown warnings."""
        if getattr(self.queue, "pool", None):
            self.queue.pool.close()
