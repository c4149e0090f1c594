"""
Build configuration model for gobuild.

This module defines the project/platform/action tree that drives a build run.
A config is normally loaded from a build.xml file (see loader.py); when no
file is present, default_config() provides a single-project fallback.

Tree shape:
    BuildConfig
        Project (path, full_path)
            Platform (os, arch, output, on)
                Action (name, args, mode, on)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class ConfigError(Exception):
    """Exception raised for build configuration errors."""

    pass


class Phase(Enum):
    """When an action runs relative to the build step."""

    BEFORE = "before"
    AFTER = "after"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "Phase":
        """Convert an `on` attribute to a Phase, defaulting to AFTER if empty.

        Raises:
            ConfigError: If the value names no known phase
        """
        if not value:
            return cls.AFTER
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(
                f"Invalid action phase '{value}'. Expected 'before' or 'after'"
            )


@dataclass
class Action:
    """A side-effect step run before or after a platform build."""

    name: str
    args: str = ""
    mode: str = ""
    on: Phase = Phase.AFTER

    def matches_mode(self, active_mode: str) -> bool:
        """Actions without a mode always run; others only in their mode."""
        return not self.mode or self.mode == active_mode


@dataclass
class Platform:
    """A target (os, arch) pair with an output template and actions.

    Empty os/arch inherit the host values. `on` restricts the platform to
    hosts running that OS.
    """

    os: str = ""
    arch: str = ""
    output: str = ""
    on: str = ""
    actions: List[Action] = field(default_factory=list)

    def runs_on(self, host_os: str) -> bool:
        return not self.on or self.on == host_os

    def actions_for(self, phase: Phase) -> List[Action]:
        """Return the actions of one phase in declared order."""
        return [action for action in self.actions if action.on is phase]


@dataclass
class Project:
    """A buildable package and the platforms to build it for."""

    path: str = ""
    platforms: List[Platform] = field(default_factory=list)
    full_path: Optional[Path] = None

    @property
    def resolved_path(self) -> Path:
        """Absolute package directory.

        Raises:
            ConfigError: If paths were not resolved by the loader
        """
        if self.full_path is None:
            raise ConfigError(f"Project path '{self.path}' has not been resolved")
        return self.full_path


@dataclass
class BuildConfig:
    """Root of the build tree."""

    projects: List[Project] = field(default_factory=list)

    def count_platforms(self) -> int:
        return sum(len(project.platforms) for project in self.projects)


def default_config() -> BuildConfig:
    """Build the fallback config used when no build.xml exists.

    Builds the package in the config directory for the host platform into
    $GOPATH/bin/<name>/ and copies config/*.conf next to the binary.
    """
    action = Action(
        name="copy",
        args="config/*.conf ${OUTPUTDIR}/config",
        on=Phase.AFTER,
    )
    platform = Platform(
        output="${GOPATH}/bin/${PKGNAME}/${PKGNAME}",
        actions=[action],
    )
    return BuildConfig(projects=[Project(path="", platforms=[platform])])
