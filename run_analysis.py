#!/usr/bin/env python3
"""
Living documentation analysis of a C# solution.

Describes every type declared in the solution's non-test projects and writes
the result as one JSON document.

Usage:
    python run_analysis.py --solution App.sln --output out/analysis.json
    python run_analysis.py --solution ./src --output out/analysis.json --pretty
    python run_analysis.py --solution App.sln --output out/analysis.json -v --workers 4
"""

import argparse
import logging
import os
import sys
import time
from typing import List, Optional

from core.settings import ConfigValidationError, load_settings
from core.structured_logging import (
    configure_structured_logging,
    get_run_id,
    resolve_log_level,
    set_run_id,
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Living Documentation Analysis of C# solutions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_analysis.py --solution App.sln --output out/analysis.json\n"
            "  python run_analysis.py --solution ./src --output out/analysis.json --pretty\n"
        )
    )

    parser.add_argument(
        "--solution",
        required=True,
        help="Path to the .sln, .csproj or source directory to analyze."
    )
    parser.add_argument(
        "--output",
        required=True,
        help="Path of the JSON file to write."
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log debug details and list files with syntax errors."
    )
    parser.add_argument(
        "-p", "--pretty",
        action="store_true",
        default=False,
        help="Indent the JSON output."
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Only log warnings and errors; do not print the summary line."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Settings YAML file. Default: livingdoc.yml next to the solution, if present."
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of threads used to parse and analyze files."
    )
    parser.add_argument(
        "--report-dir",
        default=None,
        help="Directory to write a JSON run report with analysis statistics."
    )

    return parser.parse_args(argv)


def _settings_dir(solution: str) -> str:
    solution = os.path.abspath(solution)
    return solution if os.path.isdir(solution) else os.path.dirname(solution)


def run(args: argparse.Namespace) -> str:
    """Run the analysis described by ``args`` and return the output path.

    Raises:
        FileNotFoundError: If the solution path does not exist.
        ConfigValidationError: If strict settings validation fails.
        AnalysisError: If a file fails and errors are not tolerated.
    """
    from analysis.extractor import analyze_solution
    from analysis.serialization import write_output, write_run_report

    if not os.path.exists(args.solution):
        raise FileNotFoundError(f"Solution not found: {args.solution}")

    settings = load_settings(config_path=args.config, search_dir=_settings_dir(args.solution))
    max_workers = args.workers if args.workers is not None else settings.max_workers
    if max_workers < 1:
        raise ValueError(f"--workers must be at least 1, got {max_workers}")

    logger.info(f"Solution         : {os.path.abspath(args.solution)}")
    logger.info(f"Output file      : {os.path.abspath(args.output)}")
    logger.info(f"Workers          : {max_workers}")

    types, stats = analyze_solution(
        args.solution,
        test_markers=settings.test_project_markers,
        exclude_dirs=settings.exclude_dirs,
        continue_on_error=settings.continue_on_error,
        split_field_declarators=settings.split_field_declarators,
        max_workers=max_workers,
    )

    if args.verbose:
        for file_path in stats.files_with_syntax_errors:
            print(f"Syntax errors in {file_path}", file=sys.stderr)

    output_path = write_output(types, args.output, pretty=args.pretty or settings.pretty)

    if args.report_dir:
        report_path = write_run_report(stats.to_dict(), get_run_id(), args.report_dir)
        logger.info("Run report written to %s", report_path)

    return output_path


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the analysis."""
    args = parse_args(argv)
    configure_structured_logging(level=resolve_log_level(args.verbose, args.quiet))
    run_id = set_run_id()
    logger.info("Living Documentation Analysis run %s", run_id)

    t0 = time.time()
    try:
        output_path = run(args)
    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        sys.exit(1)
    except ConfigValidationError as e:
        logger.error(f"Invalid settings: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Analysis failed: {e}", exc_info=True)
        sys.exit(1)

    elapsed_ms = int((time.time() - t0) * 1000)
    if not args.quiet:
        print(f"Living Documentation Analysis output generated in {elapsed_ms}ms at {output_path}")


if __name__ == "__main__":
    main()
