"""Queue message data transfer objects.

Defines the envelope stored in a queue for each job: the payload text
(plaintext key=value lines or base64 ciphertext) and its metadata.
"""

from pydantic import BaseModel, Field


class MetaDTO(BaseModel):
    """Metadata for a queued job (target queue, where it was relayed from)."""

    queue_name: str = Field(..., description="Name of the queue")
    source_queue: str | None = Field(None, description="Queue the job was relayed from")
    encrypted: bool = Field(False, description="Whether the payload is ciphertext")


class JobDTO(BaseModel):
    """A queued job: payload text plus metadata.

    Used when enqueueing; the relay reads the same structure back from
    message.message.
    """

    payload: str = Field(..., description="Job payload text")
    meta: MetaDTO = Field(..., description="Message metadata")
