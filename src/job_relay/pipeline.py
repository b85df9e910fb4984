"""Per-job relay pipeline.

Each job runs through the same fixed steps, with no state kept between jobs:

1. Decrypt with the source key, if one is configured
2. Parse the key=value lines
3. Require a host_name field
4. Apply the host_name filter, if one is configured
5. Encrypt the original plaintext with the destination key, if one is configured
6. Dispatch to the destination queue

Steps 1-4 can drop the job. The outcome says which step did and why.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass

from job_relay.cipher import CipherCodec
from job_relay.config import Settings
from job_relay.exceptions import CipherError, FieldMissing, ParseFailure
from job_relay.filters import HOST_NAME, evaluate
from job_relay.parser import parse

logger = logging.getLogger(__name__)

Dispatch = Callable[[str, str], None]


class DropReason(str, enum.Enum):
    """Why a job was not forwarded."""

    CIPHER_ERROR = "cipher error"
    UNPARSEABLE = "unparseable"
    MISSING_HOST_NAME = "missing host_name"
    FILTERED = "filtered"


@dataclass(frozen=True)
class Forwarded:
    """The job was dispatched to queue_name with this payload."""

    queue_name: str
    payload: str


@dataclass(frozen=True)
class Dropped:
    """The job was discarded."""

    reason: DropReason
    detail: str = ""


Outcome = Forwarded | Dropped


class JobPipeline:
    """Relays single jobs from the source endpoint to the destination endpoint.

    Settings and the dispatch callable are injected, so the pipeline can be
    driven without any queue server.
    """

    def __init__(
        self,
        settings: Settings,
        dispatch: Dispatch,
        codec: CipherCodec | None = None,
    ) -> None:
        self.settings = settings
        self.dispatch = dispatch
        self.codec = codec or CipherCodec()
        self.rule = settings.filter_rule
        logger.info(
            "Relay configured: %s (%s) -> %s (%s), host_name filter %r",
            settings.src.queue,
            "encrypted" if settings.src.encrypted else "plaintext",
            settings.dst.queue,
            "encrypted" if settings.dst.encrypted else "plaintext",
            settings.filters.host_name,
        )

    def process(self, raw_payload: str) -> Outcome:
        """Run one job through the pipeline and return what happened to it."""
        src, dst = self.settings.src, self.settings.dst

        if src.key is not None:
            logger.debug("Decrypting with source key of queue %s", src.queue)
            try:
                plaintext = self.codec.decrypt(raw_payload, src.key)
            except CipherError as e:
                return self._drop(DropReason.CIPHER_ERROR, str(e))
        else:
            plaintext = raw_payload

        try:
            tokens = parse(plaintext)
        except ParseFailure as e:
            return self._drop(DropReason.UNPARSEABLE, str(e))
        logger.debug("Parsed fields: %s", tokens)

        try:
            self._require(tokens, HOST_NAME)
        except FieldMissing as e:
            return self._drop(DropReason.MISSING_HOST_NAME, str(e))

        if not evaluate(tokens, self.rule):
            return self._drop(
                DropReason.FILTERED,
                f"{HOST_NAME} {tokens[HOST_NAME]!r} does not match {self.rule.pattern.pattern!r}",
            )
        if self.rule is not None:
            logger.debug("%s %r matches filter", HOST_NAME, tokens[HOST_NAME])

        if dst.key is not None:
            logger.debug("Encrypting with destination key of queue %s", dst.queue)
            payload = self.codec.encrypt(plaintext, dst.key)
        else:
            payload = plaintext

        logger.info("Forwarding job for %s to queue %s", tokens[HOST_NAME], dst.queue)
        self.dispatch(dst.queue, payload)
        return Forwarded(queue_name=dst.queue, payload=payload)

    @staticmethod
    def _require(tokens: dict[str, str], field: str) -> None:
        if field not in tokens:
            raise FieldMissing(field)

    @staticmethod
    def _drop(reason: DropReason, detail: str) -> Dropped:
        logger.info("Dropping job (%s): %s", reason.value, detail)
        return Dropped(reason=reason, detail=detail)
