"""
Command-line interface for gobuild.

This module provides the `gobuild` CLI tool for building Go projects for
several target platforms in parallel.
"""

import argparse
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from gobuild import __version__
from gobuild.build import BuildScheduler, ResultReporter, ResultSink
from gobuild.cli_utils import ErrorFormatter, PlatformListParser, PlatformParseError
from gobuild.config import BuildConfigLoader, ConfigError
from gobuild.logging_utils import setup_logging
from gobuild.toolchain import GoToolchain, ToolchainBuildError, ToolchainError


@dataclass
class BuildArgs:
    """Arguments for a gobuild run."""

    target: Optional[str] = None
    parallel: int = 0
    verbose: bool = False
    mode: str = ""
    init: Optional[str] = None
    log_file: Optional[Path] = None
    show_progress: bool = True


def init_command(toolchain: GoToolchain, args: BuildArgs) -> int:
    """Build cross-compilation tools for each os/arch in args.init.

    Returns:
        0 if every platform succeeded, 1 otherwise
    """
    print("initialize packages and tools...")
    ok = True
    for platform in PlatformListParser.split(args.init or ""):
        output = ""
        try:
            target_os, target_arch = PlatformListParser.parse_pair(platform)
            output = toolchain.build_tools(target_os, target_arch)
            line = f">> {platform:>15} -> success"
        except (PlatformParseError, ToolchainError) as e:
            ok = False
            if isinstance(e, ToolchainBuildError):
                output = e.output
            line = f">> {platform:>15} -> failed, error: {e}"

        if args.verbose and output:
            line += f", output: \n{output}"
        print(line)

    return 0 if ok else 1


def build_command(args: BuildArgs) -> int:
    """Build every configured project/platform pair.

    Examples:
        gobuild                        # Build using ./build.xml
        gobuild ./cmd/server           # Build a directory's build.xml
        gobuild -p 2 -m publish        # Two workers, publish-mode actions
        gobuild -i linux/arm,windows/386   # Prepare cross-compilation tools

    Returns:
        0 if every job succeeded, 1 otherwise
    """
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        toolchain = GoToolchain()
        try:
            environment = toolchain.discover_environment()
        except ToolchainError as e:
            ErrorFormatter.print_error("initialize failed", str(e))
            return 1

        if args.init:
            return init_command(toolchain, args)

        try:
            config, config_path = BuildConfigLoader(environment.path).load(args.target)
        except ConfigError as e:
            ErrorFormatter.print_error("Configuration error", str(e))
            return 1

        scheduler = BuildScheduler(
            toolchain, environment, parallelism=args.parallel, mode=args.mode
        )
        jobs = scheduler.plan(config.projects)
        if not jobs:
            print("no projects need to build")
            return 1

        if args.verbose:
            print(f"Config: {config_path}")
            print(f"Toolchain: {environment.version} ({environment.host_os}/{environment.host_arch})")
        print(f"build projects with {scheduler.parallelism} workers...")

        sink = ResultSink()
        reporter = ResultReporter(
            verbose=args.verbose, show_progress=args.show_progress, total=len(jobs)
        )
        failures: List[BaseException] = []

        def run_scheduler() -> None:
            try:
                scheduler.run(config.projects, sink)
            except BaseException as e:
                failures.append(e)

        worker = threading.Thread(target=run_scheduler, name="gobuild-scheduler")
        worker.start()
        ok = reporter.drain(sink)
        worker.join()

        if failures:
            raise failures[0]

        return 0 if ok else 1

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)
    return 1


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gobuild",
        description="gobuild - config based parallel builder for Go projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gobuild {__version__}",
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=None,
        help="Project directory or config file (default: current directory)",
    )
    parser.add_argument(
        "-i",
        "--init",
        default=None,
        metavar="PLATFORMS",
        help="Initialize cross-compilation tools for os/arch[,os/arch...]",
    )
    parser.add_argument(
        "-p",
        "--parallel",
        default=0,
        type=int,
        help="Number of parallel build jobs (default: number of CPUs)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )
    parser.add_argument(
        "-m",
        "--mode",
        default="",
        help="Build mode, e.g. develop|test|publish",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        type=Path,
        help="Also write debug logs to this file",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """gobuild - config based parallel builder for Go projects."""
    parsed_args = create_parser().parse_args(argv)

    build_args = BuildArgs(
        target=parsed_args.target,
        parallel=parsed_args.parallel,
        verbose=parsed_args.verbose,
        mode=parsed_args.mode,
        init=parsed_args.init,
        log_file=parsed_args.log_file,
        show_progress=not parsed_args.no_progress,
    )
    sys.exit(build_command(build_args))


if __name__ == "__main__":
    main()
