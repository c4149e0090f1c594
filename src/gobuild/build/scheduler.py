"""
Parallel build scheduling for gobuild.

This module turns a project/platform tree into build jobs and runs them on a
thread pool behind a fixed-capacity gate. Each job runs its own sequence:

    PENDING -> RUNNING_BEFORE -> BUILDING -> RUNNING_AFTER -> SUCCEEDED
                     |               |              |
                     +---------------+--------------+----> FAILED

A failing step ends only its own job. Results are published to a ResultSink
as jobs finish (in completion order), and the sink is closed once every job
has completed so a consumer can drain it to the end.
"""

import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import psutil

from ..config import Phase, Platform, Project
from ..toolchain import IToolchain, ToolchainBuildError, ToolchainEnvironment
from .actions import ActionExecutor
from .variables import BuildVariables, expand

logger = logging.getLogger(__name__)


class SchedulerError(Exception):
    """Raised when a build run cannot be scheduled."""

    pass


class JobState(Enum):
    """Lifecycle of a single build job."""

    PENDING = "pending"
    RUNNING_BEFORE = "running_before"
    BUILDING = "building"
    RUNNING_AFTER = "running_after"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class BuildResult:
    """Outcome of one (project, platform) job.

    Attributes:
        package: Resolved package identity, or the raw project path if
            resolution failed
        os: Target operating system
        arch: Target architecture
        error: Failure of the job, None on success
        output: Combined build output
    """

    package: str
    os: str
    arch: str
    error: Optional[Exception] = None
    output: str = ""

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BuildJob:
    """A scheduled (project, platform) pair."""

    project: Project
    platform: Platform
    state: JobState = JobState.PENDING


class ResultSink:
    """Thread-safe result stream with many producers and one consumer.

    Iterating blocks for new results and stops once close() has been called
    and everything published before it has been consumed.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self.published = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, result: BuildResult) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("cannot publish to a closed result sink")
            self.published += 1
            self._queue.put(result)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[BuildResult]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                return
            yield item  # type: ignore[misc]


def default_parallelism() -> int:
    """Number of logical CPUs on the host."""
    return psutil.cpu_count(logical=True) or os.cpu_count() or 1


class BuildScheduler:
    """Runs build jobs concurrently with bounded parallelism.

    Each scheduler owns its gate and pool, so independent schedulers can run
    side by side.

    Example usage:
        scheduler = BuildScheduler(go, go.discover_environment(), parallelism=4)
        sink = ResultSink()
        scheduler.run(config.projects, sink)
        for result in sink:
            print(result.package, result.success)
    """

    def __init__(
        self,
        toolchain: IToolchain,
        environment: ToolchainEnvironment,
        parallelism: Optional[int] = None,
        mode: str = "",
    ):
        """Initialize build scheduler.

        Args:
            toolchain: Toolchain used to resolve and build packages
            environment: Discovered toolchain environment (host os/arch, GOPATH)
            parallelism: Maximum concurrent jobs (default: logical CPU count)
            mode: Active build mode for action filtering
        """
        self.toolchain = toolchain
        self.environment = environment
        self.parallelism = parallelism if parallelism and parallelism > 0 else default_parallelism()
        self.mode = mode
        self._gate = threading.BoundedSemaphore(self.parallelism)

    def plan(self, projects: Iterable[Project]) -> List[BuildJob]:
        """Flatten projects into jobs, dropping platforms for other hosts."""
        jobs = []
        for project in projects:
            for platform in project.platforms:
                if not platform.runs_on(self.environment.host_os):
                    logger.debug(
                        "Skipping %s platform %s/%s: only runs on %s",
                        project.path or ".",
                        platform.os,
                        platform.arch,
                        platform.on,
                    )
                    continue
                jobs.append(BuildJob(project=project, platform=platform))
        return jobs

    def run(self, projects: Iterable[Project], sink: ResultSink) -> None:
        """Run every eligible job and publish its result.

        Blocks until all jobs have finished, then closes the sink.

        Raises:
            SchedulerError: If no job is eligible to run
        """
        jobs = self.plan(projects)
        try:
            if not jobs:
                raise SchedulerError("no projects need to build")

            logger.info("Scheduling %d job(s) with %d worker(s)", len(jobs), self.parallelism)
            with ThreadPoolExecutor(
                max_workers=self.parallelism, thread_name_prefix="gobuild"
            ) as pool:
                for job in jobs:
                    self._gate.acquire()
                    try:
                        pool.submit(self._run_gated, job, sink)
                    except BaseException:
                        self._gate.release()
                        raise
        finally:
            sink.close()

    def build_all(self, projects: Iterable[Project]) -> List[BuildResult]:
        """Run all jobs and return their results in completion order."""
        sink = ResultSink()
        self.run(projects, sink)
        return list(sink)

    def _run_gated(self, job: BuildJob, sink: ResultSink) -> None:
        try:
            sink.publish(self.run_job(job))
        finally:
            self._gate.release()

    def run_job(self, job: BuildJob) -> BuildResult:
        """Run the before/build/after sequence of one job.

        Failures are recorded in the returned result, never raised.
        """
        project, platform = job.project, job.platform
        target_os = platform.os or self.environment.host_os
        target_arch = platform.arch or self.environment.host_arch
        result = BuildResult(package=project.path, os=target_os, arch=target_arch)

        try:
            package_dir = project.resolved_path
            result.package = self.toolchain.resolve_package_identity(package_dir)
        except Exception as e:
            return self._fail(job, result, e)

        try:
            variables = BuildVariables.for_package(
                self.environment.path, target_os, target_arch, str(package_dir)
            )
            output_path = self._output_path(platform.output, package_dir, variables)
            variables = variables.with_output(str(output_path))
            executor = ActionExecutor(package_dir, variables.as_mapping(), self.mode)

            self._set_state(job, JobState.RUNNING_BEFORE)
            executor.execute_all(platform.actions_for(Phase.BEFORE))

            self._set_state(job, JobState.BUILDING)
            try:
                result.output = self.toolchain.build(
                    result.package, target_os, target_arch, output_path
                )
            except ToolchainBuildError as e:
                result.output = e.output
                raise

            self._set_state(job, JobState.RUNNING_AFTER)
            executor.execute_all(platform.actions_for(Phase.AFTER))
        except Exception as e:
            return self._fail(job, result, e)

        self._set_state(job, JobState.SUCCEEDED)
        return result

    @staticmethod
    def _output_path(template: str, package_dir: Path, variables: BuildVariables) -> Path:
        """Expand the output template; relative outputs live in the package dir."""
        output = expand(template, variables.as_mapping()) or variables.pkgname
        path = Path(output)
        if not path.is_absolute():
            path = package_dir / path
        return Path(os.path.normpath(path))

    def _fail(self, job: BuildJob, result: BuildResult, error: Exception) -> BuildResult:
        result.error = error
        logger.debug("Job %s(%s/%s) failed: %s", result.package, result.os, result.arch, error)
        self._set_state(job, JobState.FAILED)
        return result

    @staticmethod
    def _set_state(job: BuildJob, state: JobState) -> None:
        logger.debug(
            "Job %s [%s -> %s]", job.project.path or ".", job.state.value, state.value
        )
        job.state = state
