"""Directory listing and concurrent per-file reading."""

import asyncio
import logging
import os
from typing import Generator

from jmlog.assembler import assemble
from jmlog.models import LogRecord

logger = logging.getLogger(__name__)


def list_log_files(directory: str) -> list[str]:
    """Return every regular file in *directory*, sorted by name.

    Raises FileNotFoundError / NotADirectoryError for a bad directory.
    """
    paths = []
    for name in sorted(os.listdir(directory)):
        path = os.path.join(directory, name)
        if os.path.isfile(path):
            paths.append(path)
    return paths


def read_lines(filepath: str, encoding: str = "utf-8") -> Generator[str, None, None]:
    """Yield each line of a single file."""
    with open(filepath, "r", encoding=encoding, errors="replace") as f:
        for line in f:
            yield line


def read_records(
    filepath: str,
    enabled_types: frozenset[str] | None = None,
    precision: str = "seconds",
    encoding: str = "utf-8",
) -> list[LogRecord]:
    """Read and assemble one file into its record list."""
    records = assemble(
        read_lines(filepath, encoding),
        source_file=os.path.basename(filepath),
        enabled_types=enabled_types,
        precision=precision,
    )
    logger.debug("Read %d records from %s", len(records), filepath)
    return records


async def read_all(
    paths: list[str],
    enabled_types: frozenset[str] | None = None,
    precision: str = "seconds",
    encoding: str = "utf-8",
) -> list[list[LogRecord]]:
    """Read every file as its own task and wait for all of them.

    Result order follows *paths*. The first failing file propagates its error.
    """
    tasks = [
        asyncio.to_thread(read_records, path, enabled_types, precision, encoding)
        for path in paths
    ]
    return list(await asyncio.gather(*tasks))


def read_directory(
    directory: str,
    enabled_types: frozenset[str] | None = None,
    precision: str = "seconds",
    encoding: str = "utf-8",
) -> list[list[LogRecord]]:
    """Synchronous wrapper: list *directory* and read all files concurrently."""
    paths = list_log_files(directory)
    logger.info("Reading %d log file(s) from %s", len(paths), directory)
    return asyncio.run(read_all(paths, enabled_types, precision, encoding))
