"""jmlog — rebuild JoinMarket sessions and BIP-329 labels from log files."""

import logging
import sys
from argparse import ArgumentParser

from jmlog.config import MODES, load_config, load_yaml_config
from jmlog.pipeline import run

logger = logging.getLogger("jmlog")


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="jmlog-parse",
        description="Correlate JoinMarket log events into sessions and wallet labels.",
    )
    parser.add_argument(
        "directory",
        help="Directory holding the log files",
    )
    parser.add_argument(
        "output_path",
        nargs="?",
        default=None,
        help="Sessions JSON output file (default: joinmarket.json)",
    )
    parser.add_argument(
        "--mode",
        choices=list(MODES),
        default=None,
        help="full: all events plus labels; reduced: taker events only (default: full)",
    )
    parser.add_argument(
        "--labels",
        dest="labels_path",
        default=None,
        help="BIP-329 label output file (default: joinmarket-bip329.json)",
    )
    parser.add_argument(
        "--precision",
        choices=["seconds", "milliseconds"],
        default=None,
        help="Timestamp precision used for session keys (default: seconds)",
    )
    parser.add_argument(
        "--stats",
        dest="stats_path",
        default=None,
        help="Write run counters as JSON to this file",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args, load_yaml_config(args.config))
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [jmlog] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    logger.info("Config: directory=%s, mode=%s, precision=%s", config.directory, config.mode, config.precision)

    try:
        run(config)
    except OSError as exc:
        logger.error("Aborting: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
