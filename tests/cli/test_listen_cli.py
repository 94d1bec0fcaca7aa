"""CLI tests for ``aprsfeed listen`` and ``aprsfeed login-line``."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from aprsfeed.cli.main import cli, main


class TestLoginLine:
    def test_plain_output(self) -> None:
        result = CliRunner().invoke(cli, ["--format", "rich", "login-line"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("user N0CALL pass -1 vers aprsfeed ")
        assert result.output.rstrip().endswith("filter t/ps")

    def test_json_output(self) -> None:
        result = CliRunner().invoke(
            cli, ["--format", "json", "login-line", "--callsign", "M0ABC", "--filter", "p"]
        )

        assert result.exit_code == 0, result.output
        parsed = json.loads(result.output)
        assert parsed["command"] == "login-line"
        assert parsed["data"]["login"].startswith("user M0ABC pass -1 ")
        assert parsed["data"]["login"].endswith("filter t/p")

    def test_config_file_used(self, cli_env: dict[str, str]) -> None:
        Path(cli_env["APRSFEED_CONFIG"]).write_text(
            json.dumps({"callsign": "G4XYZ", "passcode": "12345"}), encoding="utf-8"
        )

        result = CliRunner().invoke(cli, ["--format", "rich", "login-line"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("user G4XYZ pass 12345 ")


class TestListen:
    def test_overrides_reach_client(self) -> None:
        client = MagicMock()
        client.run = AsyncMock()
        with patch("aprsfeed.feed.session.FeedClient", return_value=client) as client_cls:
            result = CliRunner().invoke(
                cli,
                [
                    "--format",
                    "json",
                    "listen",
                    "--host",
                    "rotate.aprs2.net",
                    "--port",
                    "10152",
                    "--prefix",
                    "G",
                    "--prefix",
                    "M",
                    "--read-timeout",
                    "5",
                ],
            )

        assert result.exit_code == 0, result.output
        client.run.assert_awaited_once()
        settings = client_cls.call_args.args[0]
        assert settings.host == "rotate.aprs2.net"
        assert settings.port == 10152
        assert settings.regional_prefixes == ["G", "M"]
        assert settings.read_timeout == 5.0
        # Unspecified values keep their defaults
        assert settings.backoff == 10.0

    def test_rich_mode_prints_settings(self) -> None:
        client = MagicMock()
        client.run = AsyncMock()
        with patch("aprsfeed.feed.session.FeedClient", return_value=client):
            result = CliRunner().invoke(cli, ["--format", "rich", "listen"])

        assert result.exit_code == 0, result.output
        assert "euro.aprs2.net:14580" in result.output
        assert "Ctrl+C" in result.output


class TestMain:
    def test_invalid_config_reports_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--format", "json", "listen", "--port", "0"])

        assert exc_info.value.code == 1
        parsed = json.loads(capsys.readouterr().out)
        assert parsed["ok"] is False
        assert parsed["command"] == "listen"
        assert parsed["error"]["code"] == "invalid_config"
        assert "port" in parsed["error"]["message"]

    def test_invalid_config_honours_rich_format(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("APRSFEED_PORT", "0")

        with pytest.raises(SystemExit) as exc_info:
            main(["--format", "rich", "listen"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Invalid configuration" in out
        assert "port" in out
        assert '"ok"' not in out

    def test_unexpected_error_reports_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        with (
            patch("aprsfeed.cli.main._listen", side_effect=RuntimeError("loop broke")),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["--format", "json", "listen"])

        assert exc_info.value.code == 1
        parsed = json.loads(capsys.readouterr().out)
        assert parsed["command"] == "listen"
        assert parsed["error"] == {"code": "RuntimeError", "message": "loop broke"}

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "aprsfeed" in capsys.readouterr().out

    def test_unknown_command_exits_nonzero(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["nonsense"])
        assert exc_info.value.code == 2
