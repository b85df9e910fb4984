"""Handler for jobs on the relay's source queue.

Turns a dequeued PGMQ message into a payload string and runs it through the
job pipeline.
"""

from typing import Any

from pgmq import Message

from job_relay.exceptions import InvalidJobError
from job_relay.handlers.base import BaseHandler
from job_relay.pipeline import JobPipeline, Outcome


class RelayHandler(BaseHandler):
    """Validates source queue messages and relays their payloads."""

    def __init__(self, pipeline: JobPipeline) -> None:
        self.pipeline = pipeline

    @staticmethod
    def payload_of(message: Message) -> str:
        """Return the payload carried by message.

        Accepts the JobDTO envelope ({"payload": ..., "meta": ...}) or a bare
        JSON string.
        """
        body: Any = message.message
        if isinstance(body, str):
            return body
        if isinstance(body, dict) and isinstance(body.get("payload"), str):
            return body["payload"]
        raise InvalidJobError(f"message {message.msg_id} has no payload string")

    def validate(self, message: Message) -> None:
        """Raise InvalidJobError if the message carries no payload."""
        self.payload_of(message)

    def handle(self, message: Message) -> Outcome:
        """Relay the message's payload and return the pipeline outcome."""
        return self.pipeline.process(self.payload_of(message))
