"""Tests for the gobuild command line."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gobuild.build import BuildScheduler
from gobuild.cli import BuildArgs, build_command, create_parser, main
from gobuild.cli_utils import PlatformListParser, PlatformParseError
from gobuild.toolchain import ToolchainBuildError, ToolchainEnvironment, ToolchainError

HOST = ToolchainEnvironment(
    version="go1.21.5", host_os="linux", host_arch="amd64", root="/usr/local/go", path="/go"
)

BUILD_XML = """<projects>
    <project path="app">
        <platform os="linux" arch="amd64" output="bin/${GOOS}/${PKGNAME}"/>
        <platform os="windows" arch="amd64" output="bin/${GOOS}/${PKGNAME}"/>
        <platform os="darwin" arch="arm64" on="darwin"/>
    </project>
</projects>
"""


@pytest.fixture
def mock_toolchain():
    """Patch GoToolchain in the CLI with a mock that builds successfully."""
    with patch("gobuild.cli.GoToolchain") as toolchain_class:
        toolchain = MagicMock()
        toolchain.discover_environment.return_value = HOST
        toolchain.resolve_package_identity.side_effect = lambda path: f"example.com/{Path(path).name}"
        toolchain.build.return_value = "ok"
        toolchain_class.return_value = toolchain
        yield toolchain


@pytest.fixture
def project_dir(tmp_path):
    (tmp_path / "app").mkdir()
    (tmp_path / "build.xml").write_text(BUILD_XML)
    return tmp_path


def run_main(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestCLIBuild:
    """Tests for a gobuild run."""

    def test_success(self, mock_toolchain, project_dir, capsys):
        code = run_main([str(project_dir), "-p", "2", "--no-progress"])

        out = capsys.readouterr().out
        assert code == 0
        assert "build projects with 2 workers..." in out
        assert "example.com/app(linux/amd64)" in out
        assert "example.com/app(windows/amd64)" in out
        assert "darwin" not in out
        assert mock_toolchain.build.call_count == 2

    def test_build_failure_exit_code(self, mock_toolchain, project_dir, capsys):
        def build(package, target_os, target_arch, output_path):
            if target_os == "windows":
                raise ToolchainBuildError("go build > exit status 2", "undefined: syscall.Foo")
            return "ok"

        mock_toolchain.build.side_effect = build

        code = run_main([str(project_dir), "-v", "--no-progress"])

        out = capsys.readouterr().out
        assert code == 1
        assert "error: go build > exit status 2" in out
        assert "undefined: syscall.Foo" in out

    def test_toolchain_discovery_failure(self, mock_toolchain, project_dir, capsys):
        mock_toolchain.discover_environment.side_effect = ToolchainError("go version > not found")

        assert run_main([str(project_dir)]) == 1
        assert "initialize failed" in capsys.readouterr().out

    def test_config_error(self, mock_toolchain, tmp_path, capsys):
        assert run_main([str(tmp_path / "missing")]) == 1
        assert "can not find directory or file" in capsys.readouterr().out

    def test_no_jobs(self, mock_toolchain, tmp_path, capsys):
        (tmp_path / "build.xml").write_text('<projects><project><platform on="plan9"/></project></projects>')

        assert run_main([str(tmp_path)]) == 1
        assert "no projects need to build" in capsys.readouterr().out
        mock_toolchain.build.assert_not_called()

    def test_mode_is_passed(self, mock_toolchain, project_dir):
        with patch("gobuild.cli.BuildScheduler", wraps=BuildScheduler) as scheduler_class:
            run_main([str(project_dir), "-m", "publish", "--no-progress"])

        assert scheduler_class.call_args.kwargs["mode"] == "publish"

    def test_log_file(self, mock_toolchain, project_dir, tmp_path):
        log_file = tmp_path / "logs" / "gobuild.log"

        assert run_main([str(project_dir), "--no-progress", "--log-file", str(log_file)]) == 0
        assert log_file.exists()


class TestCLIInit:
    """Tests for the --init option."""

    def test_init_platforms(self, mock_toolchain, capsys):
        mock_toolchain.build_tools.return_value = ""

        code = build_command(BuildArgs(init="linux/arm,windows/386"))

        assert code == 0
        assert mock_toolchain.build_tools.call_count == 2
        assert "linux/arm -> success" in capsys.readouterr().out

    def test_init_invalid_platform(self, mock_toolchain, capsys):
        code = build_command(BuildArgs(init="linux"))

        assert code == 1
        assert "platform invalid" in capsys.readouterr().out
        mock_toolchain.build_tools.assert_not_called()


class TestParser:
    """Tests for argument parsing helpers."""

    def test_defaults(self):
        args = create_parser().parse_args([])
        assert args.target is None
        assert args.parallel == 0
        assert args.mode == ""
        assert not args.verbose

    def test_platform_list(self):
        assert PlatformListParser.split("linux/amd64, windows/386,") == ["linux/amd64", "windows/386"]
        assert PlatformListParser.parse_pair("linux/arm") == ("linux", "arm")
        with pytest.raises(PlatformParseError):
            PlatformListParser.parse_pair("linux/arm/v7")
