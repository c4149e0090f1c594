"""Abstract base classes for toolchain adapters.

This module defines the interface the build scheduler uses to talk to a
compiler toolchain. The scheduler only depends on IToolchain, so tests and
alternative toolchains can be plugged in without touching scheduling code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict


class ToolchainError(Exception):
    """Base exception for toolchain errors."""

    pass


class ToolchainBuildError(ToolchainError):
    """Raised when a build invocation fails.

    Attributes:
        output: Combined output captured from the failed build
    """

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


@dataclass(frozen=True)
class ToolchainEnvironment:
    """Facts discovered about the host toolchain.

    Attributes:
        version: Toolchain version (e.g. "go1.21.5")
        host_os: Host operating system (e.g. "linux")
        host_arch: Host architecture (e.g. "amd64")
        root: Toolchain installation root (GOROOT)
        path: Workspace base path (GOPATH)
    """

    version: str
    host_os: str
    host_arch: str
    root: str
    path: str


class IToolchain(ABC):
    """Interface for toolchains that build packages for a target platform."""

    @abstractmethod
    def discover_environment(self) -> ToolchainEnvironment:
        """Discover version, host platform and base paths.

        Raises:
            ToolchainError: If the toolchain is missing or unusable
        """
        pass

    @abstractmethod
    def resolve_package_identity(self, path: Path) -> str:
        """Resolve the package identity for a directory.

        Args:
            path: Absolute package directory

        Returns:
            Fully-qualified package name used for building

        Raises:
            ToolchainError: If no buildable main package exists at path
        """
        pass

    @abstractmethod
    def build(self, package: str, target_os: str, target_arch: str, output_path: Path) -> str:
        """Build a package for a target platform.

        Args:
            package: Package identity from resolve_package_identity()
            target_os: Target operating system
            target_arch: Target architecture
            output_path: Absolute path of the produced binary

        Returns:
            Combined build output

        Raises:
            ToolchainBuildError: If the build fails
        """
        pass

    @abstractmethod
    def build_environment(self, target_os: str, target_arch: str) -> Dict[str, str]:
        """Environment for a build targeting os/arch.

        Returns a new mapping; the process environment is never modified.
        """
        pass
