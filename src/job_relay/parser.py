"""Parse job payloads made of key=value lines.

A payload is one or more lines. Each line is a key of word characters, an
equals sign, and a value running to the end of the line. The value may be
empty and may contain further equals signs.
"""

import re

from job_relay.exceptions import ParseFailure

LINE_PATTERN = re.compile(r"(\w+)=(.*)")


def parse(text: str) -> dict[str, str]:
    """Return the fields of a payload; a key seen twice keeps its last value.

    Raises:
        ParseFailure: If the payload is empty or any line is not key=value.
    """
    # only newlines end a line; other control characters belong to the value
    lines = re.split(r"\r?\n", text)
    # trailing blank lines (a final newline, decryption padding) are not lines
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        raise ParseFailure("empty payload")

    tokens: dict[str, str] = {}
    for number, line in enumerate(lines, start=1):
        match = LINE_PATTERN.fullmatch(line)
        if match is None:
            raise ParseFailure(f"line {number} is not key=value: {line!r}")
        key, value = match.groups()
        tokens[key] = value
    return tokens
