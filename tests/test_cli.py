"""Tests for the command-line interface.

Lookups run against a patched IconPipeline so no network is used.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from site_icon_tool.cli import app, validate_verbosity
from site_icon_tool.errors import FetchError, IconNotFoundError
from site_icon_tool.models import DiscoveryResult, IconCandidate

runner = CliRunner()

BEST = IconCandidate.create("https://example.com/icon-192.png", "image/png", 192, 192, "icon")
SMALL = IconCandidate.create("https://example.com/favicon.ico", "image/x-icon", 16, 16)


def mock_pipeline(pipeline_cls: MagicMock) -> MagicMock:
    """Return the object the patched pipeline yields from its with block."""
    pipeline = pipeline_cls.return_value.__enter__.return_value
    pipeline.build_result.return_value = DiscoveryResult(
        url="example.com", icons=[BEST, SMALL], best_icon=BEST
    )
    pipeline.resolve.return_value = (BEST, b"\x89PNG icon bytes", "image/png")
    return pipeline


# ============================================================================
# Test CLI Entry Point
# ============================================================================


class TestCLIEntryPoint:
    """Test CLI entry point and help text."""

    def test_cli_help(self):
        """Test that CLI help lists the commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Find, validate and download the best icon" in result.stdout
        assert "lookup" in result.stdout
        assert "fetch" in result.stdout
        assert "create-config" in result.stdout

    def test_version(self):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "site-icon-tool" in result.stdout

    def test_paths(self):
        """Test paths lists the fallback icon paths."""
        result = runner.invoke(app, ["paths"])
        assert result.exit_code == 0
        assert "Fallback icon paths" in result.stdout
        assert "/favicon.png" in result.stdout


class TestVerbosityValidation:
    """Test validate_verbosity()."""

    def test_valid(self):
        """Test levels are accepted case-insensitively."""
        assert validate_verbosity("DEBUG") == "debug"
        assert validate_verbosity(None) is None

    def test_invalid(self):
        """Test unknown levels are rejected."""
        with pytest.raises(typer.BadParameter):
            validate_verbosity("loud")


# ============================================================================
# Test Lookup Command
# ============================================================================


class TestLookup:
    """Test lookup command."""

    @patch("site_icon_tool.cli.IconPipeline")
    def test_lookup_table(self, pipeline_cls):
        """Test lookup renders the icon table and best icon."""
        pipeline = mock_pipeline(pipeline_cls)

        result = runner.invoke(app, ["lookup", "https://Example.com/"])

        assert result.exit_code == 0
        assert "Icons for example.com" in result.stdout
        assert "Best icon" in result.stdout
        assert "1 lookup(s) completed" in result.stdout
        pipeline.build_result.assert_called_once_with("example.com", None)

    @patch("site_icon_tool.cli.IconPipeline")
    def test_lookup_quiet(self, pipeline_cls):
        """Test quiet mode prints only the best icon URL."""
        mock_pipeline(pipeline_cls)

        result = runner.invoke(app, ["lookup", "example.com", "-v", "quiet"])

        assert result.exit_code == 0
        assert result.stdout.strip() == BEST.url

    @patch("site_icon_tool.cli.IconPipeline")
    def test_lookup_json(self, pipeline_cls):
        """Test JSON output matches the service shape."""
        mock_pipeline(pipeline_cls)

        result = runner.invoke(app, ["lookup", "example.com", "--format", "json", "--size", "16"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["results"][0]["best_icon"]["url"] == BEST.url
        assert len(data["results"][0]["icons"]) == 2
        assert data["summary"]["total_errors"] == 0

    @patch("site_icon_tool.cli.IconPipeline")
    def test_lookup_no_validate(self, pipeline_cls):
        """Test --no-validate switches validation off."""
        mock_pipeline(pipeline_cls)

        runner.invoke(app, ["lookup", "example.com", "--no-validate"])

        assert pipeline_cls.call_args.kwargs["validate"] is False

    @patch("site_icon_tool.cli.IconPipeline")
    def test_lookup_invalid_url(self, pipeline_cls):
        """Test an invalid URL is reported and exits with 1."""
        result = runner.invoke(app, ["lookup", "not a url", "--format", "json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["summary"]["total_errors"] == 1
        assert data["summary"]["errors"][0]["url"] == "not a url"
        pipeline_cls.assert_not_called()

    @patch("site_icon_tool.cli.IconPipeline")
    def test_lookup_not_found(self, pipeline_cls):
        """Test a site without icons exits with 1."""
        pipeline = mock_pipeline(pipeline_cls)
        pipeline.build_result.side_effect = IconNotFoundError("example.com")

        result = runner.invoke(app, ["lookup", "example.com"])

        assert result.exit_code == 1
        assert "1 lookup(s) failed" in result.stdout

    @patch("site_icon_tool.cli.IconPipeline")
    def test_lookup_debug_enables_stats(self, pipeline_cls):
        """Test debug verbosity turns on request statistics."""
        from site_icon_tool.utils.debug_stats import get_stats_tracker

        mock_pipeline(pipeline_cls)

        result = runner.invoke(app, ["lookup", "example.com", "-v", "debug"])

        assert result.exit_code == 0
        assert get_stats_tracker().is_enabled()

    def test_lookup_unknown_format(self):
        """Test unknown output format is rejected."""
        result = runner.invoke(app, ["lookup", "example.com", "--format", "xml"])
        assert result.exit_code == 1
        assert "Unknown output format" in result.stdout

    def test_lookup_invalid_verbosity(self):
        """Test invalid verbosity is a usage error."""
        result = runner.invoke(app, ["lookup", "example.com", "-v", "loud"])
        assert result.exit_code != 0


# ============================================================================
# Test Fetch Command
# ============================================================================


class TestFetch:
    """Test fetch command."""

    @patch("site_icon_tool.cli.IconPipeline")
    def test_fetch_writes_file(self, pipeline_cls, tmp_path):
        """Test the icon bytes are written to the output file."""
        pipeline = mock_pipeline(pipeline_cls)
        output = tmp_path / "icon.png"

        result = runner.invoke(app, ["fetch", "example.com", "-o", str(output), "-s", "192"])

        assert result.exit_code == 0
        assert output.read_bytes() == b"\x89PNG icon bytes"
        assert "Saved" in result.stdout
        pipeline.resolve.assert_called_once_with("example.com", 192)

    @pytest.mark.parametrize(
        "error",
        [IconNotFoundError("example.com"), FetchError("timeout", "Timeout accessing icon")],
    )
    @patch("site_icon_tool.cli.IconPipeline")
    def test_fetch_failure(self, pipeline_cls, error, tmp_path):
        """Test lookup failures exit with 1 and write nothing."""
        pipeline = mock_pipeline(pipeline_cls)
        pipeline.resolve.side_effect = error
        output = tmp_path / "icon.png"

        result = runner.invoke(app, ["fetch", "example.com", "-o", str(output)])

        assert result.exit_code == 1
        assert not output.exists()


# ============================================================================
# Test Create Config Command
# ============================================================================


class TestCreateConfig:
    """Test create-config command."""

    def test_create_config(self):
        """Test the file is created and not overwritten without --force."""
        with runner.isolated_filesystem():
            result = runner.invoke(app, ["create-config", "--output", "config.toml"])
            assert result.exit_code == 0
            assert "Created configuration file" in result.stdout

            result = runner.invoke(app, ["create-config", "--output", "config.toml"])
            assert result.exit_code == 1
            assert "already exists" in result.stdout

            result = runner.invoke(app, ["create-config", "--output", "config.toml", "--force"])
            assert result.exit_code == 0
