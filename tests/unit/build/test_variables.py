"""Unit tests for placeholder expansion and build variables."""

import os

import pytest

from gobuild.build.variables import BuildVariables, expand


class TestExpand:
    """Test cases for expand()."""

    def test_braced_and_missing(self):
        """Unknown placeholders expand to an empty string."""
        context = {"GOOS": "linux", "GOARCH": "amd64"}
        assert expand("${GOOS}-${GOARCH}/${MISSING}", context) == "linux-amd64/"

    def test_bare_names(self):
        assert expand("$PKGNAME.tar.gz", {"PKGNAME": "app"}) == "app.tar.gz"
        assert expand("$PKGNAMEx", {"PKGNAME": "app"}) == ""
        assert expand("$PKGNAME/bin", {"PKGNAME": "app"}) == "app/bin"

    def test_no_placeholders_is_identity(self):
        assert expand("plain/path.txt", {"GOOS": "linux"}) == "plain/path.txt"
        assert expand("", {}) == ""

    def test_dollar_without_name_is_kept(self):
        """A lone "$" or "$1" is not a placeholder."""
        assert expand("price$", {}) == "price$"
        assert expand("^v=.*$", {}) == "^v=.*$"
        assert expand("$1", {"1": "x"}) == "$1"

    def test_repeated_placeholder(self):
        assert expand("${A}${A}$A", {"A": "x"}) == "xxx"

    def test_context_not_modified(self):
        context = {"A": "1"}
        expand("${A}${B}", context)
        assert context == {"A": "1"}


class TestBuildVariables:
    """Test cases for BuildVariables."""

    def test_for_package(self):
        package_dir = os.path.join(os.sep, "go", "src", "app")
        variables = BuildVariables.for_package("/go", "linux", "arm64", package_dir)

        mapping = variables.as_mapping()
        assert mapping["GOPATH"] == "/go"
        assert mapping["GOOS"] == "linux"
        assert mapping["GOARCH"] == "arm64"
        assert mapping["PKGDIR"] == os.path.join(os.sep, "go", "src")
        assert mapping["PKGNAME"] == "app"
        assert "OUTPUTDIR" not in mapping
        assert "BUILDTIME" not in mapping

    def test_with_output(self):
        variables = BuildVariables.for_package("/go", "linux", "amd64", "/src/app")
        output = os.path.join(os.sep, "out", "linux", "app")

        with_output = variables.with_output(output, build_time=0)
        mapping = with_output.as_mapping()

        assert mapping["OUTPUTDIR"] == os.path.join(os.sep, "out", "linux")
        assert mapping["OUTPUTNAME"] == "app"
        assert len(mapping["BUILDTIME"]) == 14
        assert mapping["BUILDTIME"].isdigit()
        # Original record is unchanged
        assert "OUTPUTDIR" not in variables.as_mapping()

    def test_mapping_is_read_only(self):
        mapping = BuildVariables.for_package("/go", "linux", "amd64", "/src/app").as_mapping()
        with pytest.raises(TypeError):
            mapping["GOOS"] = "windows"  # type: ignore[index]

    def test_empty_required_field_rejected(self):
        with pytest.raises(ValueError, match="GOOS"):
            BuildVariables(gopath="/go", goos="", goarch="amd64", pkgdir="/src", pkgname="app")
