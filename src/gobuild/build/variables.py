"""Placeholder expansion for action arguments and output paths.

Templates reference variables as ${NAME} or $NAME. Each build job gets its
own BuildVariables record; only its read-only mapping is handed to expand().
"""

import os
import re
import time
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional

PLACEHOLDER_PATTERN = re.compile(r"\$(?:\{([^{}]+)\}|([A-Za-z_][A-Za-z0-9_]*))")

BUILD_TIME_FORMAT = "%Y%m%d%H%M%S"


def expand(template: str, context: Mapping[str, str]) -> str:
    """Replace ${name} and $name placeholders with values from context.

    Unknown names expand to an empty string. A "$" that does not start a
    placeholder is left as is.

    Example:
        >>> expand("${GOOS}-${GOARCH}/${MISSING}", {"GOOS": "linux", "GOARCH": "amd64"})
        'linux-amd64/'
    """
    if "$" not in template:
        return template

    def lookup(match: "re.Match[str]") -> str:
        name = match.group(1) or match.group(2)
        return context.get(name, "")

    return PLACEHOLDER_PATTERN.sub(lookup, template)


@dataclass(frozen=True)
class BuildVariables:
    """Variables available to one build job.

    Output fields stay None until the output path has been expanded, since
    the output template itself can only use the package variables.
    """

    gopath: str
    goos: str
    goarch: str
    pkgdir: str
    pkgname: str
    outputdir: Optional[str] = None
    outputname: Optional[str] = None
    buildtime: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("goos", "goarch", "pkgdir", "pkgname"):
            if not getattr(self, name):
                raise ValueError(f"build variable {name.upper()} must not be empty")

    @classmethod
    def for_package(cls, gopath: str, goos: str, goarch: str, package_dir: str) -> "BuildVariables":
        """Create the package-level variables for a project directory."""
        package_dir = os.path.normpath(package_dir)
        return cls(
            gopath=gopath,
            goos=goos,
            goarch=goarch,
            pkgdir=os.path.dirname(package_dir),
            pkgname=os.path.basename(package_dir),
        )

    def with_output(self, output_path: str, build_time: Optional[float] = None) -> "BuildVariables":
        """Return a copy with OUTPUTDIR, OUTPUTNAME and BUILDTIME set."""
        stamp = time.strftime(
            BUILD_TIME_FORMAT,
            time.localtime(build_time) if build_time is not None else time.localtime(),
        )
        return replace(
            self,
            outputdir=os.path.dirname(output_path),
            outputname=os.path.basename(output_path),
            buildtime=stamp,
        )

    def as_mapping(self) -> Mapping[str, str]:
        """Read-only name -> value mapping used for expansion."""
        data: Dict[str, str] = {
            "GOPATH": self.gopath,
            "GOOS": self.goos,
            "GOARCH": self.goarch,
            "PKGDIR": self.pkgdir,
            "PKGNAME": self.pkgname,
        }
        if self.outputdir is not None:
            data["OUTPUTDIR"] = self.outputdir
        if self.outputname is not None:
            data["OUTPUTNAME"] = self.outputname
        if self.buildtime is not None:
            data["BUILDTIME"] = self.buildtime
        return MappingProxyType(data)
