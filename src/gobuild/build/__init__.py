"""
Build system components for gobuild.

This module provides the build pipeline:
- Placeholder expansion for templates
- Action execution (exec, copy, replace)
- Parallel build scheduling
- Result reporting
"""

from .actions import (
    ActionArgumentError,
    ActionError,
    ActionExecutor,
    ActionFileError,
    ActionPatternError,
    CommandFailedError,
    UnsupportedActionError,
)
from .reporter import ResultReporter
from .scheduler import (
    BuildJob,
    BuildResult,
    BuildScheduler,
    JobState,
    ResultSink,
    SchedulerError,
    default_parallelism,
)
from .variables import BuildVariables, expand

__all__ = [
    "ActionArgumentError",
    "ActionError",
    "ActionExecutor",
    "ActionFileError",
    "ActionPatternError",
    "BuildJob",
    "BuildResult",
    "BuildScheduler",
    "BuildVariables",
    "CommandFailedError",
    "JobState",
    "ResultReporter",
    "ResultSink",
    "SchedulerError",
    "UnsupportedActionError",
    "default_parallelism",
    "expand",
]
