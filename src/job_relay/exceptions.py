"""Exceptions raised by the relay.

ConfigError is fatal at startup. Every other error is scoped to a single job:
the worker drops that job and moves on to the next one.
"""


class JobRelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(JobRelayError):
    """Configuration is missing or invalid."""


class CipherError(JobRelayError):
    """A payload could not be decrypted (bad base64, bad length, bad text)."""


class ParseFailure(JobRelayError):
    """A payload does not consist of key=value lines."""


class FieldMissing(JobRelayError):
    """A mandatory field is absent from the parsed payload."""

    def __init__(self, field: str) -> None:
        super().__init__(f"missing {field}")
        self.field = field


class InvalidJobError(JobRelayError, ValueError):
    """A dequeued queue message does not carry a payload string."""
