"""End-to-end run: read → merge → normalize → correlate → label → write."""

import logging
from dataclasses import dataclass, field

from jmlog.config import Config
from jmlog.correlate import correlate
from jmlog.exporter import LabelValidator, write_labels, write_sessions
from jmlog.labels import derive_labels
from jmlog.metrics import Metrics
from jmlog.models import Label, LogRecord
from jmlog.normalize import merge_records, normalize_all
from jmlog.reader import read_directory

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    sessions: dict[str, list[LogRecord]]
    labels: list[Label] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)


def build_sessions(per_file: list[list[LogRecord]], metrics: Metrics | None = None) -> dict[str, list[LogRecord]]:
    """Merge per-file records and fold them into sessions."""
    records = merge_records(per_file)
    if metrics is not None:
        metrics.increment("records", len(records))
    normalize_all(records, metrics)
    return correlate(records, metrics)


def run(config: Config) -> RunResult:
    """Process *config.directory* and write the configured outputs.

    File-system errors propagate to the caller.
    """
    metrics = Metrics(config.stats_path)

    per_file = read_directory(
        config.directory,
        enabled_types=config.enabled_types,
        precision=config.precision,
        encoding=config.encoding,
    )
    metrics.increment("files", len(per_file))

    sessions = build_sessions(per_file, metrics)
    write_sessions(config.output_path, sessions)

    labels: list[Label] = []
    if config.labels_enabled:
        labels = derive_labels(sessions)
        metrics.increment("labels.derived", len(labels))
        validator = LabelValidator()
        metrics.increment("labels.written", write_labels(config.labels_path, labels, validator))
        metrics.increment("labels.invalid", validator.get_stats()["invalid"])

    metrics.save()
    logger.info("Done: %s", metrics.summary())
    return RunResult(sessions=sessions, labels=labels, metrics=metrics)
