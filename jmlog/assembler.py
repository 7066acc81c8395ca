"""Record assembler — turns one file's lines into typed, multiline records."""

import re
from datetime import datetime
from typing import Iterable

from jmlog.classifier import classify
from jmlog.models import LogRecord

LINE_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}),(\d+)\s(?:\[.*?\]\s*)+(.*)$"
)

PRECISIONS = ("seconds", "milliseconds")


def parse_prefix(line: str, precision: str = "seconds") -> tuple[datetime, str] | None:
    """Split a structural log line into (timestamp, payload).

    Returns None for continuation lines and for prefixes whose timestamp
    does not parse.
    """
    match = LINE_PATTERN.match(line)
    if not match:
        return None

    timestamp_str, millis, payload = match.groups()
    try:
        timestamp = datetime.fromisoformat(timestamp_str)
    except ValueError:
        return None

    if precision == "milliseconds":
        timestamp = timestamp.replace(microsecond=int(millis[:3]) * 1000)
    return timestamp, payload


def assemble(
    lines: Iterable[str],
    source_file: str = "",
    enabled_types: frozenset[str] | None = None,
    precision: str = "seconds",
) -> list[LogRecord]:
    """Build the ordered record list for a single source file."""
    records: list[LogRecord] = []
    current: LogRecord | None = None

    for raw in lines:
        line = raw.rstrip("\r\n")
        prefix = parse_prefix(line, precision)

        if prefix is None:
            # Continuation line; dropped when no record is open
            if current is not None:
                current.raw_content += f"\n{line}"
            continue

        timestamp, payload = prefix
        rule = classify(payload, enabled_types)
        if rule is None:
            current = None
            continue

        current = LogRecord(
            timestamp=timestamp,
            type=rule.event_type,
            source_file=source_file,
            raw_content=payload if rule.keeps_payload else "",
        )
        records.append(current)

    return records
