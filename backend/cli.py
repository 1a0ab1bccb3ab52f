"""
ribstats CLI: process RIB dumps listed in a YAML job file and summarize results.

Usage:
    ribstats cook jobs.yml [--summarize-only] [--limit N] [--workers N]
    ribstats summarize jobs.yml [--strict]
"""

from __future__ import annotations

import argparse
import functools
import logging
import os
import sys
from concurrent.futures import ProcessPoolExecutor
from typing import Optional

from config import ConfigError, RibstatsConfig
from elements import ElementSourceError
from elements.bgpkit_source import iter_elements
from processors import ProcessorError, SummarizeError
from ribeye import RibEye
from storage import StorageError
from targets import RibMeta

logger = logging.getLogger(__name__)

EXIT_CONFIG = 1
EXIT_PROCESSING = 2
EXIT_SUMMARIZE = 3


def setup_logging(level: Optional[str] = None) -> None:
    level = level or os.environ.get("RIBSTATS_LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def cook_one(rib_meta: RibMeta, config: RibstatsConfig) -> None:
    """Run all configured processors over one snapshot."""
    source = functools.partial(iter_elements, cache_dir=config.cache_dir)
    ribeye = (
        RibEye(element_source=source)
        .with_processor_names(config.processors, config.output_dir, **config.processor_kwargs())
        .with_rib_meta(rib_meta)
    )
    ribeye.process_mrt_file(rib_meta.rib_dump_url)


def cook_all(config: RibstatsConfig, workers: int) -> None:
    rib_metas = config.snapshots
    logger.info("processing %d RIB dump files with %d workers", len(rib_metas), workers)
    if workers <= 1:
        for rib_meta in rib_metas:
            cook_one(rib_meta, config)
        return

    with ProcessPoolExecutor(max_workers=workers) as pool:
        futures = [(rib_meta, pool.submit(cook_one, rib_meta, config)) for rib_meta in rib_metas]
        for rib_meta, future in futures:
            try:
                future.result()
            except Exception:
                logger.error("worker failed on %s (%s)", rib_meta.rib_dump_url, rib_meta.collector)
                for _, pending in futures:
                    pending.cancel()
                raise


def summarize_all(config: RibstatsConfig, ignore_error: bool) -> dict:
    ribeye = RibEye().with_processor_names(
        config.processors, config.output_dir, **config.processor_kwargs()
    )
    return ribeye.summarize_latest_files(config.snapshots, ignore_error)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ribstats", description="RIB dump statistics")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $RIBSTATS_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    cook = sub.add_parser("cook", help="Process RIB dump files, then summarize latest results")
    cook.add_argument("config", help="YAML job file")
    cook.add_argument("--summarize-only", action="store_true", help="Only summarize latest results")
    cook.add_argument("-l", "--limit", type=int, default=None, help="Process only the first N snapshots")
    cook.add_argument("-w", "--workers", type=int, default=None, help="Parallel worker processes")
    cook.add_argument("-p", "--processors", nargs="*", default=None,
                      help="Processors to run: pfx2as, pfx2dist, as2rel, peer-stats (default: all)")
    cook.add_argument("-d", "--dir", default=None, help="Root output directory")

    summarize = sub.add_parser("summarize", help="Merge latest results across snapshots")
    summarize.add_argument("config", help="YAML job file")
    summarize.add_argument("--strict", action="store_true", help="Fail on unreadable artifacts")
    summarize.add_argument("-p", "--processors", nargs="*", default=None)
    summarize.add_argument("-d", "--dir", default=None, help="Root output directory")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = RibstatsConfig.from_yaml(args.config)
        if args.processors:
            config.processors = args.processors
        if args.dir:
            config.output_dir = args.dir
        # resolve names early so typos fail before any work
        RibEye().with_processor_names(config.processors, None)
    except (ConfigError, ValueError) as exc:
        logger.error("invalid configuration: %s", exc)
        return EXIT_CONFIG

    ignore_error = config.ignore_errors
    if args.command == "cook":
        if args.limit is not None:
            config.snapshots = config.snapshots[: args.limit]
        if not args.summarize_only:
            try:
                cook_all(config, args.workers or config.workers)
            except (ProcessorError, ElementSourceError, StorageError) as exc:
                logger.error("processing failed: %s", exc)
                return EXIT_PROCESSING
    elif args.strict:
        ignore_error = False

    logger.info("summarize all latest results")
    try:
        summarize_all(config, ignore_error)
    except (SummarizeError, StorageError) as exc:
        logger.error("summarize failed: %s", exc)
        return EXIT_SUMMARIZE
    return 0


if __name__ == "__main__":
    sys.exit(main())
