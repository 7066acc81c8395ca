"""Session JSON and BIP-329 NDJSON export."""

import json
import logging
import os
import tempfile
from collections import defaultdict

import jsonschema

from jmlog.models import Label, LogRecord, label_to_dict

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas", "bip329_label.json")


class LabelValidator:
    """Validates label dicts against the BIP-329 JSON schema."""

    def __init__(self, schema_path: str = DEFAULT_SCHEMA_PATH):
        with open(schema_path, "r") as f:
            schema = json.load(f)

        self._validator = jsonschema.Draft202012Validator(schema)
        self._stats = {
            "total": 0,
            "valid": 0,
            "invalid": 0,
            "error_types": defaultdict(int),
        }

    def validate(self, label: dict) -> tuple[bool, list[str]]:
        """Return (is_valid, error messages)."""
        self._stats["total"] += 1
        errors = list(self._validator.iter_errors(label))

        if not errors:
            self._stats["valid"] += 1
            return True, []

        self._stats["invalid"] += 1
        messages = []
        for error in errors:
            self._stats["error_types"][error.validator] += 1
            messages.append(error.message)
        return False, messages

    def get_stats(self) -> dict:
        stats = dict(self._stats)
        stats["error_types"] = dict(stats["error_types"])
        return stats


def sessions_to_dict(sessions: dict[str, list[LogRecord]]) -> dict[str, list[dict]]:
    return {key: [record.to_dict() for record in records] for key, records in sessions.items()}


def format_sessions(sessions: dict[str, list[LogRecord]]) -> str:
    return json.dumps(sessions_to_dict(sessions), indent=2)


def format_labels(labels: list[Label], validator: LabelValidator | None = None) -> tuple[str, int]:
    """Render labels as NDJSON, one object per line.

    Labels failing schema validation are logged and left out. Returns the
    text and the number of labels written.
    """
    validator = validator or LabelValidator()
    lines = []
    for label in labels:
        data = label_to_dict(label)
        ok, errors = validator.validate(data)
        if not ok:
            logger.warning("Skipping invalid label %s: %s", data, "; ".join(errors))
            continue
        lines.append(json.dumps(data))
    text = "\n".join(lines)
    return (text + "\n" if lines else text), len(lines)


def write_atomic(path: str, text: str) -> None:
    """Write *text* to *path* via a temp file in the same directory."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except Exception:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def write_sessions(path: str, sessions: dict[str, list[LogRecord]]) -> None:
    write_atomic(path, format_sessions(sessions))
    logger.info("Wrote %d sessions to %s", len(sessions), path)


def write_labels(path: str, labels: list[Label], validator: LabelValidator | None = None) -> int:
    text, count = format_labels(labels, validator)
    write_atomic(path, text)
    logger.info("Wrote %d labels to %s", count, path)
    return count
