"""
build.xml configuration loader.

This module locates and parses the build.xml file for a build target and
resolves every project's package directory before scheduling starts.

Example build.xml:
    <projects>
        <project path=".">
            <platform os="linux" arch="amd64" output="bin/${GOOS}_${GOARCH}/app">
                <actions>
                    <action name="replace" args="version.go DEV ${BUILDTIME}" on="before"/>
                    <action name="copy" args="config/*.conf ${OUTPUTDIR}/config"/>
                </actions>
            </platform>
        </project>
    </projects>

Usage:
    loader = BuildConfigLoader(gopath="/home/me/go")
    config, config_path = loader.load(".")
"""

import logging
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Tuple

from .build_config import (
    Action,
    BuildConfig,
    ConfigError,
    Phase,
    Platform,
    Project,
    default_config,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "build.xml"


def parse_build_xml(text: str, source: str = CONFIG_FILE_NAME) -> BuildConfig:
    """Parse build.xml content into a BuildConfig.

    Args:
        text: XML document
        source: Name used in error messages

    Returns:
        Parsed BuildConfig (project paths not yet resolved)

    Raises:
        ConfigError: If the document is malformed or has the wrong root
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ConfigError(f"Failed to parse {source}: {e}") from e

    if root.tag != "projects":
        raise ConfigError(
            f"Failed to parse {source}: root element must be <projects>, got <{root.tag}>"
        )

    projects = []
    for project_el in root.findall("project"):
        platforms = []
        for platform_el in project_el.findall("platform"):
            actions = [
                Action(
                    name=action_el.get("name", ""),
                    args=action_el.get("args", ""),
                    mode=action_el.get("mode", ""),
                    on=Phase.from_string(action_el.get("on")),
                )
                for action_el in platform_el.findall("actions/action")
            ]
            platforms.append(
                Platform(
                    os=platform_el.get("os", ""),
                    arch=platform_el.get("arch", ""),
                    output=platform_el.get("output", ""),
                    on=platform_el.get("on", ""),
                    actions=actions,
                )
            )
        projects.append(Project(path=project_el.get("path", ""), platforms=platforms))

    return BuildConfig(projects=projects)


class BuildConfigLoader:
    """Resolves a build target to a config and absolute project paths.

    A target is a directory (containing build.xml) or a config file. Targets
    starting with "." are relative to the working directory; other relative
    targets live under $GOPATH/src.
    """

    def __init__(self, gopath: str, cwd: Optional[Path] = None):
        """Initialize loader.

        Args:
            gopath: GOPATH of the discovered toolchain
            cwd: Working directory for "."-relative targets (default: os.getcwd())
        """
        self.gopath = gopath
        self.cwd = cwd

    @property
    def gopath_src(self) -> Path:
        return Path(self.gopath) / "src"

    def resolve_target(self, target: Optional[str]) -> Tuple[Path, bool]:
        """Turn the CLI target into an absolute path.

        Returns:
            Tuple of (absolute path, whether it was resolved inside GOPATH)
        """
        target = target or "."
        if os.path.isabs(target):
            return Path(os.path.normpath(target)), False
        if target.startswith("."):
            cwd = self.cwd or Path(os.getcwd())
            return Path(os.path.normpath(cwd / target)), False
        return Path(os.path.normpath(self.gopath_src / target)), True

    def load(self, target: Optional[str] = None) -> Tuple[BuildConfig, Path]:
        """Load the config for a target and resolve project paths.

        Args:
            target: Directory or config file (default: ".")

        Returns:
            Tuple of (BuildConfig, config file path)

        Raises:
            ConfigError: If the target is missing or the config is invalid
        """
        path, in_gopath = self.resolve_target(target)
        if not path.exists():
            raise ConfigError(f"can not find directory or file: {path}")

        config_path = path / CONFIG_FILE_NAME if path.is_dir() else path

        if config_path.exists():
            try:
                text = config_path.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigError(f"Failed to read {config_path}: {e}") from e
            config = parse_build_xml(text, str(config_path))
            logger.debug("Loaded %d project(s) from %s", len(config.projects), config_path)
        else:
            logger.debug("No %s found, using default config", config_path)
            config = default_config()

        self.resolve_paths(config, config_path.parent, in_gopath)
        return config, config_path

    def resolve_paths(self, config: BuildConfig, config_dir: Path, in_gopath: bool) -> None:
        """Set full_path on every project.

        Absolute paths are kept, an empty path means the config directory, and
        relative paths are joined to the config directory (local targets) or
        to $GOPATH/src (GOPATH targets).
        """
        for project in config.projects:
            if project.path and os.path.isabs(project.path):
                full_path = Path(project.path)
            elif not project.path:
                full_path = config_dir
            elif in_gopath:
                full_path = self.gopath_src / project.path
            else:
                full_path = config_dir / project.path
            project.full_path = Path(os.path.normpath(full_path))
