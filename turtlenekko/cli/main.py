from __future__ import annotations
import argparse, sys
from pathlib import Path
from typing import List, Optional

from .. import __version__
from ..benchmark import run_matrix
from ..config.bench_config import load_bench_config, write_default_config, DEFAULT_CONFIG_TEMPLATE
from ..errors import TurtlenekkoError
from ..formatters import format_json, format_text, format_csv, write_to_file
from ..logs.benchmark_logger import setup_logging, parse_log_level


def cmd_init(args) -> int:
    logger = setup_logging(console_level=parse_log_level(args.log_level))
    path = Path(args.path)
    if path.exists():
        logger.error(f"Configuration file already exists: {path}")
        return 1
    try:
        write_default_config(path)
    except OSError as e:
        logger.log_error(f"Failed to write configuration file {path}", e)
        return 1
    logger.info(f"Configuration file created successfully: {path}")
    return 0


def cmd_benchmark(args) -> int:
    logger = setup_logging(log_dir=args.log_dir, console_level=parse_log_level(args.log_level))

    try:
        cfg = load_bench_config(args.config)
    except FileNotFoundError as e:
        logger.warning(str(e))
        print(DEFAULT_CONFIG_TEMPLATE)
        logger.info("You can create a new config file with the example above")
        logger.info("Or run: turtlenekko init to create a default config file")
        return 1
    except TurtlenekkoError as e:
        logger.log_error("Error loading configuration", e)
        return 1

    try:
        results_file = open(args.results, "w", encoding="utf-8")
    except OSError as e:
        logger.log_error(f"Error creating results log file {args.results}", e)
        return 1

    with results_file:
        try:
            matrix_results = run_matrix(cfg.driver, None, cfg.matrix, cfg.sampling, cfg.score)
        except TurtlenekkoError as e:
            logger.log_error("Matrix benchmark failed", e)
            results_file.write(f"Matrix benchmark failed: {e}\n")
            return 1

        # results log is complete before anything is rendered to stdout
        write_to_file(results_file, matrix_results)
        results_file.flush()

        fmt = args.format
        if fmt == "json":
            format_json(matrix_results)
        elif fmt == "csv":
            format_csv(matrix_results)
        else:
            if fmt != "text":
                logger.warning(f"Unknown format {fmt!r}, using text format")
            format_text(matrix_results)

    logger.info(f"Results have been saved: {args.results}")
    return 0


def cmd_version(args) -> int:
    print(f"Turtlenekko version {__version__}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="turtlenekko",
        description="Measure the performance of LLMs served through chat completion endpoints",
    )
    ap.add_argument("-l", "--log-level", default="info", help="Log level (debug, info, warn, error)")
    sub = ap.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Initialize a new configuration file")
    p_init.add_argument("path", nargs="?", default="config.yaml")
    p_init.set_defaults(func=cmd_init)

    p_bench = sub.add_parser("benchmark", help="Run a benchmark against an LLM")
    p_bench.add_argument("-c", "--config", default="config.yaml", help="Path to configuration file")
    p_bench.add_argument("-r", "--results", default="results.log", help="Path to results log file")
    p_bench.add_argument("-f", "--format", default="json", help="Output format (csv, text, json)")
    p_bench.add_argument("--log-dir", default=None, help="Also write a debug log file to this directory")
    p_bench.set_defaults(func=cmd_benchmark)

    p_version = sub.add_parser("version", help="Print the version information")
    p_version.set_defaults(func=cmd_version)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
