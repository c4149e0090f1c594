"""Go toolchain adapter.

This module wraps the `go` command line tool: discovering the installed
version and host platform, resolving package import paths, and building
packages for a target GOOS/GOARCH.

Design:
    - Every invocation goes through subprocess.run with an explicit env
    - GOOS/GOARCH overrides are passed per build, os.environ is never touched
    - Failures raise ToolchainError / ToolchainBuildError with captured output
"""

import logging
import os
import re
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from .base import IToolchain, ToolchainBuildError, ToolchainEnvironment, ToolchainError

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"(go\d+\.\d+(?:\.\d+)?)\S* (\w+)/(\w+)")


class GoToolchain(IToolchain):
    """Builds Go packages with the `go` binary found on PATH.

    Example usage:
        go = GoToolchain()
        env = go.discover_environment()
        pkg = go.resolve_package_identity(Path("/src/app"))
        log = go.build(pkg, "linux", "arm64", Path("/out/app"))
    """

    def __init__(self, go_binary: str = "go"):
        """Initialize Go toolchain adapter.

        Args:
            go_binary: Name or path of the go executable
        """
        self.go_binary = go_binary
        self.environment: Optional[ToolchainEnvironment] = None
        self._package_dirs: Dict[str, Path] = {}
        self._lock = threading.Lock()

    def discover_environment(self) -> ToolchainEnvironment:
        gopath = os.environ.get("GOPATH", "")
        if not gopath:
            gopath = self._run_go(["env", "GOPATH"]).strip()

        root = self._run_go(["env", "GOROOT"]).strip()

        output = self._run_go(["version"])
        match = VERSION_PATTERN.search(output)
        if match is None:
            raise ToolchainError(f"can not get version info from result: {output.strip()}")

        self.environment = ToolchainEnvironment(
            version=match.group(1),
            host_os=match.group(2),
            host_arch=match.group(3),
            root=root,
            path=gopath,
        )
        logger.debug("Discovered Go toolchain: %s", self.environment)
        return self.environment

    def resolve_package_identity(self, path: Path) -> str:
        """Resolve the import path of the main package in a directory.

        Packages outside GOPATH (reported by `go list` with a leading "_" or
        ".") are identified by their absolute directory.
        """
        path = Path(path)
        if not path.is_dir():
            raise ToolchainError(f"package directory not found: {path}")

        output = self._run_go(["list", "-f", "{{.Name}} {{.ImportPath}}", "."], cwd=path)
        parts = output.strip().split(None, 1)
        if len(parts) != 2:
            raise ToolchainError(f"can not resolve package in {path}: {output.strip()}")

        name, import_path = parts
        if name != "main":
            raise ToolchainError(
                f"no main package found in {path} (found package '{name}')"
            )

        if import_path.startswith(("_", ".")):
            import_path = str(path)

        with self._lock:
            self._package_dirs[import_path] = path
        return import_path

    def build_environment(self, target_os: str, target_arch: str) -> Dict[str, str]:
        env = dict(os.environ)
        if self.environment is not None and self.environment.path:
            env["GOPATH"] = self.environment.path
        env["GOOS"] = target_os
        env["GOARCH"] = target_arch
        return env

    def build(self, package: str, target_os: str, target_arch: str, output_path: Path) -> str:
        output = str(output_path)
        if target_os == "windows" and not output.endswith(".exe"):
            output += ".exe"

        # Packages resolved from a directory are built from inside it
        with self._lock:
            cwd = self._package_dirs.get(package)
        if cwd is None and os.path.isabs(package):
            cwd = Path(package)
        target = "." if cwd is not None else package

        ldflags = f"-X 'main.BUILD_TIME={time.strftime('%Y-%m-%d %H:%M:%S')}'"
        cmd = [self.go_binary, "build", "-ldflags", ldflags, "-o", output, target]

        logger.debug("Building %s for %s/%s -> %s", package, target_os, target_arch, output)
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                env=self.build_environment(target_os, target_arch),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise ToolchainBuildError(f"go build > {e}") from e

        if result.returncode != 0:
            raise ToolchainBuildError(
                f"go build > exit status {result.returncode}", result.stdout
            )
        return result.stdout

    def build_tools(self, target_os: str, target_arch: str) -> str:
        """Build the standard library and tools for cross-compilation.

        Runs make.bash (make.bat on Windows) in GOROOT/src. Only needed by
        Go releases that do not ship cross-compilation support.

        Returns:
            Command output

        Raises:
            ToolchainBuildError: If the script fails
        """
        environment = self.environment or self.discover_environment()
        src_dir = Path(environment.root) / "src"
        script = src_dir / ("make.bat" if sys.platform == "win32" else "make.bash")

        try:
            result = subprocess.run(
                [str(script), "--no-clean"],
                cwd=str(src_dir),
                env=self.build_environment(target_os, target_arch),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ToolchainBuildError(f"{script.name} > {e}") from e

        if result.returncode != 0:
            raise ToolchainBuildError(
                f"{script.name} > exit status {result.returncode}", result.stderr
            )
        return result.stdout

    def _run_go(self, args: List[str], cwd: Optional[Path] = None) -> str:
        """Run a go subcommand and return its stdout.

        Raises:
            ToolchainError: If go is missing or the command fails
        """
        cmd = [self.go_binary] + args
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ToolchainError(f"go {args[0]} > {e}") from e

        if result.returncode != 0:
            raise ToolchainError(
                f"go {args[0]} > exit status {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout
