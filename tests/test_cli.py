"""Tests for the command-line interface"""

from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from pipebomb.cli import cli
from pipebomb.federation.host_info import HostInfo


class TestCli:
    """Test command wiring and exit codes"""

    def test_identify(self):
        """A confirmed host is printed with its scheme"""
        info = HostInfo("music.example.org", "Home", True)
        with patch("pipebomb.cli.check_host", AsyncMock(return_value=info)):
            result = CliRunner().invoke(cli, ["identify", "music.example.org"])
        assert result.exit_code == 0
        assert "Home (https://music.example.org)" in result.output

    def test_identify_offline(self):
        """An offline host exits with the federation error code"""
        with patch("pipebomb.cli.check_host", AsyncMock(return_value=None)):
            result = CliRunner().invoke(cli, ["identify", "gone.example.org"])
        assert result.exit_code == 3

    def test_missing_config(self, tmp_path):
        """Without --server and without pipebomb.yaml the exit code is 1"""
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "none.yaml"), "playlist", "7"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output
