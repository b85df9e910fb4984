"""Decide whether a parsed job is forwarded."""

import re
from dataclasses import dataclass

HOST_NAME = "host_name"


@dataclass(frozen=True)
class FilterRule:
    """A regular expression tested against one field of a job."""

    field: str
    pattern: re.Pattern[str]

    @classmethod
    def compile(cls, field: str, pattern: str) -> "FilterRule":
        """Build a rule from a pattern string; raises re.error if it is invalid."""
        return cls(field=field, pattern=re.compile(pattern))


def evaluate(tokens: dict[str, str], rule: FilterRule | None) -> bool:
    """Return True if the job passes the rule.

    No rule passes everything. The pattern may match anywhere in the value.
    The field must be present in tokens.
    """
    if rule is None:
        return True
    return rule.pattern.search(tokens[rule.field]) is not None
