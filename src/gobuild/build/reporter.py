"""Build result reporting.

Drains the result stream of a build run, printing one line per job and
keeping the aggregate pass/fail status.
"""

from typing import Iterable, Optional

from tqdm import tqdm

from ..cli_utils import ErrorFormatter
from .scheduler import BuildResult


class ResultReporter:
    """Prints per-job results and tracks the overall outcome."""

    def __init__(self, verbose: bool = False, show_progress: bool = True, total: Optional[int] = None):
        """Initialize reporter.

        Args:
            verbose: Print the captured build output of each job
            show_progress: Show a progress bar while draining
            total: Expected number of results (for the progress bar)
        """
        self.verbose = verbose
        self.show_progress = show_progress
        self.total = total
        self.reported = 0
        self.failed = 0

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def format_result(self, result: BuildResult) -> str:
        if result.success:
            status = f"{ErrorFormatter.GREEN}success{ErrorFormatter.RESET}"
        else:
            status = f"{ErrorFormatter.RED}failed{ErrorFormatter.RESET}"

        line = f">> {result.package}({result.os}/{result.arch}) -> {status}"
        if result.error is not None:
            line += f", error: {result.error}"
        if self.verbose and result.output:
            line += f", output: \n{result.output}"
        return line

    def report(self, result: BuildResult) -> None:
        self.reported += 1
        if not result.success:
            self.failed += 1
        tqdm.write(self.format_result(result))

    def drain(self, results: Iterable[BuildResult]) -> bool:
        """Report every result until the stream ends.

        Returns:
            True if every result succeeded
        """
        with tqdm(
            total=self.total,
            desc="Building",
            unit="job",
            disable=not self.show_progress,
            leave=False,
        ) as progress:
            for result in results:
                self.report(result)
                progress.update(1)
        return self.all_succeeded
