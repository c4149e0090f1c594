"""Action Executor.

This module runs the side-effect actions configured around a platform build:

    exec <command> [args...]                run a command in the package directory
    copy <src> <dest>                       copy files, globs or directory trees
    replace [-r] <path> <find> <replace>    substitute text in a file in place

Design:
    - Arguments are split on whitespace and every token is expanded
    - Relative paths are resolved against the executor's base directory
    - Actions whose mode does not match the active build mode are skipped
    - A failing action raises an ActionError subclass naming the action and
      its phase; nothing already applied is rolled back
"""

import glob
import logging
import os
import re
import shutil
import stat
import subprocess
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

from ..config import Action
from .variables import expand

logger = logging.getLogger(__name__)

# Only these mark a source as a glob; "[" in a plain file name is literal
GLOB_CHARS = "*?"


class ActionError(Exception):
    """Raised when an action fails.

    Attributes:
        action_name: Name of the failed action (exec, copy, replace, ...)
        phase: Phase the action ran in ("before" or "after")
    """

    def __init__(self, action_name: str, phase: str, message: str):
        super().__init__(f"action [{action_name}] ({phase}) failed: {message}")
        self.action_name = action_name
        self.phase = phase


class UnsupportedActionError(ActionError):
    """Raised for an action name the executor does not know."""

    pass


class ActionArgumentError(ActionError):
    """Raised when an action gets the wrong arguments."""

    pass


class ActionFileError(ActionError):
    """Raised when a file an action needs is missing or unreadable."""

    pass


class ActionPatternError(ActionError):
    """Raised for an invalid regular expression."""

    pass


class CommandFailedError(ActionError):
    """Raised when an exec command cannot start or exits non-zero.

    Attributes:
        output: Combined stdout and stderr of the command
        returncode: Exit status, or None if the command could not start
    """

    def __init__(
        self,
        action_name: str,
        phase: str,
        message: str,
        output: str = "",
        returncode: Optional[int] = None,
    ):
        super().__init__(action_name, phase, f"{message}, output:\n{output}")
        self.output = output
        self.returncode = returncode


class ActionExecutor:
    """Executes actions for one build job.

    Example usage:
        executor = ActionExecutor(Path("/src/app"), variables.as_mapping(), mode="publish")
        executor.execute_all(platform.actions_for(Phase.AFTER))
    """

    def __init__(self, base_dir: Path, variables: Mapping[str, str], mode: str = ""):
        """Initialize action executor.

        Args:
            base_dir: Working directory for commands and relative paths
            variables: Placeholder values for argument expansion
            mode: Active build mode compared against each action's mode
        """
        self.base_dir = Path(base_dir)
        self.variables = variables
        self.mode = mode

    def execute_all(self, actions: Iterable[Action]) -> None:
        """Run actions in order, stopping at the first failure.

        Raises:
            ActionError: From the first action that fails
        """
        for action in actions:
            self.execute(action)

    def execute(self, action: Action) -> None:
        """Run a single action.

        Raises:
            ActionError: If the action fails or is not supported
        """
        phase = action.on.value
        if not action.matches_mode(self.mode):
            logger.debug("Skipping action [%s] (mode %s != %s)", action.name, action.mode, self.mode)
            return

        args = [expand(token, self.variables) for token in action.args.split()]
        logger.debug("Running action [%s] (%s) in %s: %s", action.name, phase, self.base_dir, args)

        if action.name == "exec":
            self.exec_command(args, phase)
        elif action.name == "copy":
            self.copy(args, phase)
        elif action.name == "replace":
            self.replace(args, phase)
        else:
            raise UnsupportedActionError(
                action.name, phase, f"action [{action.name}] is not supported"
            )

    def exec_command(self, args: List[str], phase: str = "after") -> None:
        """Run a command in the base directory with the process environment."""
        if not args:
            raise ActionArgumentError("exec", phase, "no command is specified")

        try:
            result = subprocess.run(
                args,
                cwd=str(self.base_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise CommandFailedError("exec", phase, str(e)) from e

        if result.returncode != 0:
            raise CommandFailedError(
                "exec",
                phase,
                f"{args[0]} exited with status {result.returncode}",
                output=result.stdout,
                returncode=result.returncode,
            )

    def copy(self, args: List[str], phase: str = "after") -> None:
        """Copy a file, glob or directory into a destination directory."""
        if len(args) != 2:
            raise ActionArgumentError("copy", phase, "copy action take two arguments")

        src = self._resolve(args[0])
        dest = self._resolve(args[1])

        try:
            if any(char in args[0] for char in GLOB_CHARS):
                self._copy_glob(self._glob_pattern(args[0]), dest)
                return

            try:
                src_stat = src.stat()
            except OSError as e:
                raise ActionFileError("copy", phase, str(e)) from e

            if stat.S_ISDIR(src_stat.st_mode):
                self._copy_dir(src, dest)
            else:
                self._copy_file(src, dest)
        except ActionError:
            raise
        except (OSError, shutil.Error) as e:
            raise ActionFileError("copy", phase, str(e)) from e

    def replace(self, args: List[str], phase: str = "after") -> None:
        """Replace every occurrence of a string or pattern in a file."""
        args = list(args)
        use_regexp = False
        while args and args[0].startswith("-"):
            flag = args.pop(0)
            if flag == "--":
                break
            if flag in ("-r", "--r", "-r=true", "--r=true"):
                use_regexp = True
            elif flag in ("-r=false", "--r=false"):
                use_regexp = False
            else:
                raise ActionArgumentError("replace", phase, f"flag provided but not defined: {flag}")

        if len(args) != 3:
            raise ActionArgumentError("replace", phase, "replace action should take 3 arguments")

        path = self._resolve(args[0])
        find, replacement = args[1].encode(), args[2].encode()

        try:
            mode = stat.S_IMODE(path.stat().st_mode)
            data = path.read_bytes()
        except OSError as e:
            raise ActionFileError("replace", phase, str(e)) from e

        if use_regexp:
            try:
                pattern = re.compile(find, re.MULTILINE)
            except re.error as e:
                raise ActionPatternError("replace", phase, f"invalid pattern '{args[1]}': {e}") from e
            # Backslashes in the replacement are literal text
            data = pattern.sub(lambda _match: replacement, data)
        else:
            data = data.replace(find, replacement)

        try:
            path.write_bytes(data)
            os.chmod(path, mode)
        except OSError as e:
            raise ActionFileError("replace", phase, str(e)) from e

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.base_dir / candidate

    def _glob_pattern(self, source: str) -> str:
        """Anchor a relative glob at the base directory, escaping its name."""
        if os.path.isabs(source):
            return source
        return os.path.join(glob.escape(str(self.base_dir)), source)

    def _copy_glob(self, pattern: str, dest: Path) -> None:
        matches = sorted(glob.glob(pattern))
        if not matches:
            logger.debug("No files match %s, nothing to copy", pattern)
            return

        for match in matches:
            source = Path(match)
            if source.is_dir():
                self._copy_dir(source, dest)
            else:
                self._copy_file(source, dest)

    def _copy_file(self, src: Path, dest_dir: Path) -> None:
        dest_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy(str(src), str(dest_dir / src.name))

    def _copy_dir(self, src: Path, dest_dir: Path) -> None:
        """Recreate src as dest_dir/<src name>, keeping file modes."""
        target_root = dest_dir / src.name
        target_root.mkdir(parents=True, exist_ok=True)

        for dirpath, dirnames, filenames in os.walk(src):
            relative = Path(dirpath).relative_to(src)
            target = target_root / relative
            target.mkdir(parents=True, exist_ok=True)
            for filename in filenames:
                shutil.copy(os.path.join(dirpath, filename), str(target / filename))
