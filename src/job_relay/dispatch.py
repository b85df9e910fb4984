"""Fire-and-forget dispatch of relayed jobs to the destination queue."""

import logging

from job_relay.persist_base import PersistBase
from job_relay.queue_model_dto import JobDTO, MetaDTO

logger = logging.getLogger(__name__)


class QueueDispatcher:
    """Callable that wraps a payload in a JobDTO and enqueues it.

    The message ID returned by the queue is logged and otherwise ignored.
    """

    def __init__(
        self,
        repo: PersistBase,
        source_queue: str | None = None,
        encrypted: bool = False,
    ) -> None:
        self.repo = repo
        self.source_queue = source_queue
        self.encrypted = encrypted

    def __call__(self, queue_name: str, payload: str) -> None:
        job = JobDTO(
            payload=payload,
            meta=MetaDTO(
                queue_name=queue_name,
                source_queue=self.source_queue,
                encrypted=self.encrypted,
            ),
        )
        message_id = self.repo.enqueue(job)
        logger.debug("Dispatched message %s to queue %s", message_id, queue_name)
