"""CLI utility functions for gobuild.

This module provides common utilities used by the CLI including:
- Error handling and formatting
- Cross-compilation platform argument parsing
"""

import sys
from typing import List, Tuple


class PlatformParseError(ValueError):
    """Raised when an os/arch pair is malformed."""

    pass


class PlatformListParser:
    """Parses comma-separated os/arch lists given to --init."""

    @staticmethod
    def split(platforms: str) -> List[str]:
        """Split "linux/amd64,windows/386" into its non-empty entries."""
        return [item.strip() for item in platforms.split(",") if item.strip()]

    @staticmethod
    def parse_pair(platform: str) -> Tuple[str, str]:
        """Parse a single "os/arch" entry.

        Raises:
            PlatformParseError: If the entry is not exactly os/arch
        """
        pair = platform.split("/")
        if len(pair) != 2 or not all(pair):
            raise PlatformParseError("platform invalid")
        return pair[0], pair[1]


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Configuration error")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)
