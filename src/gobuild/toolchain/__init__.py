"""Toolchain adapters for gobuild.

The build scheduler depends only on IToolchain; GoToolchain is the adapter
for the `go` command.
"""

from .base import IToolchain, ToolchainBuildError, ToolchainEnvironment, ToolchainError
from .go_toolchain import GoToolchain

__all__ = [
    "GoToolchain",
    "IToolchain",
    "ToolchainBuildError",
    "ToolchainEnvironment",
    "ToolchainError",
]
