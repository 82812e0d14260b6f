import json
from datetime import datetime, timezone

import pytest
from click.testing import CliRunner

from taglog import __version__
from taglog.cli import cli
from taglog.errors import LogFileError


@pytest.fixture
def runner(monkeypatch):
    for key in ("LOG_LEVEL", "LOG_DIR", "FILE_LOG_DISABLED", "DISABLED_TAGS", "ROTATE_DAYS", "USE_JSON_OUTPUT", "RENDER_MODE"):
        monkeypatch.delenv(f"TAGLOG_{key}", raising=False)
    return CliRunner()


def today_log_name() -> str:
    return f"logs_{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.log"


class TestCli:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_emit_writes_console_and_file(self, runner, tmp_path):
        result = runner.invoke(
            cli, ["--log-dir", str(tmp_path), "emit", "info", "HTTP", "started", "GET /x", "-s", "req"]
        )

        assert result.exit_code == 0, result.output
        line = [line for line in result.output.splitlines() if "started" in line][0]
        assert "[INFO]" in line
        assert "HTTP req" in line
        assert line.rstrip().endswith("GET /x")

        log_file = tmp_path / today_log_name()
        records = [json.loads(record) for record in log_file.read_text(encoding="utf-8").split("\r\n") if record]
        assert records[-1]["tag"] == "HTTP"
        assert records[-1]["level"] == "INFO"
        assert records[-1]["message"] == "started"
        assert records[-1]["subTags"] == "req"
        assert records[-1]["content"] == "GET /x"

    def test_emit_json_console(self, runner, tmp_path):
        result = runner.invoke(cli, ["--log-dir", str(tmp_path), "emit", "warn", "DB", "slow", "--json"])

        assert result.exit_code == 0, result.output
        line = [line for line in result.output.splitlines() if '"slow"' in line][0]
        record = json.loads(line)
        assert record["level"] == "WARN"
        assert record["tag"] == "DB"

    def test_emit_rejects_unknown_level(self, runner, tmp_path):
        result = runner.invoke(cli, ["--log-dir", str(tmp_path), "emit", "loud", "DB", "slow"])

        assert result.exit_code == 2

    def test_sweep(self, runner, tmp_path):
        old_file = tmp_path / "logs_2000-01-01.log"
        old_file.write_text("old\n", encoding="utf-8")
        current_file = tmp_path / today_log_name()
        current_file.write_text("current\n", encoding="utf-8")

        result = runner.invoke(cli, ["--log-dir", str(tmp_path), "sweep"])

        assert result.exit_code == 0, result.output
        assert "Removed 1 log file(s)" in result.output
        assert "New logger config set" not in result.output
        lines = result.output.splitlines()
        assert "Log file removed" in lines[0]
        assert lines[-2:] == [str(old_file), "Removed 1 log file(s)"]
        assert not old_file.exists()
        assert current_file.exists()

    def test_sweep_with_days_override(self, runner, tmp_path):
        kept = tmp_path / "logs_2000-01-01.log"
        kept.write_text("old\n", encoding="utf-8")

        result = runner.invoke(cli, ["--log-dir", str(tmp_path), "sweep", "--days", "100000"])

        assert result.exit_code == 0, result.output
        assert "Removed 0 log file(s)" in result.output
        assert kept.exists()

    def test_show_config(self, runner, tmp_path):
        result = runner.invoke(cli, ["--log-dir", str(tmp_path), "show-config"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["logDir"] == str(tmp_path)
        assert data["logLevel"] == "trace"
        assert data["messageOptions"]["dateFormat"] == "YYYY-MM-DD HH:mm:ss.SSS"

    def test_show_config_from_file(self, runner, tmp_path):
        config_file = tmp_path / "taglog.yml"
        config_file.write_text("logger:\n  logLevel: error\n  disabledTags: [NOISY]\n", encoding="utf-8")

        result = runner.invoke(cli, ["-c", str(config_file), "show-config"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["logLevel"] == "error"
        assert data["disabledTags"] == ["NOISY"]

    def test_validate(self, runner):
        result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_validate_invalid_level(self, runner, monkeypatch):
        monkeypatch.setenv("TAGLOG_LOG_LEVEL", "bogus")

        result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_bad_yaml_config(self, runner, tmp_path):
        config_file = tmp_path / "taglog.yml"
        config_file.write_text("logger: [unclosed\n", encoding="utf-8")

        result = runner.invoke(cli, ["-c", str(config_file), "validate"])

        assert result.exit_code == 1

    def test_emit_reports_unwritable_log_dir(self, runner, tmp_path, mocker):
        mocker.patch("taglog.cli.AppLogger", side_effect=LogFileError(tmp_path / "logs_x.log", "Permission denied"))

        result = runner.invoke(cli, ["--log-dir", str(tmp_path), "emit", "info", "HTTP", "started"])

        assert result.exit_code == 1
        assert "Unable to open log file" in result.output
        assert "Permission denied" in result.output

    def test_emit_rejects_invalid_interval(self, runner, tmp_path):
        config_file = tmp_path / "taglog.yml"
        config_file.write_text(
            f"logger:\n  logDir: {tmp_path / 'logs'}\n  rotationCheckInterval: soon\n", encoding="utf-8"
        )

        result = runner.invoke(cli, ["-c", str(config_file), "emit", "info", "HTTP", "started"])

        assert result.exit_code == 1
        assert "Invalid rotationCheckInterval 'soon'" in result.output
        assert not (tmp_path / "logs").exists()
