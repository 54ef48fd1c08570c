"""CLI tests using click's CliRunner.

Every test points the ledger, event log and gateway log at tmp_path through
a config file, so nothing outside the test directory is touched.
"""

from __future__ import annotations

import json
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from click.testing import CliRunner

from antenna import __version__
from antenna.acceptance.ledger import AcceptanceLedger, resolve_ledger_path
from antenna.cli.commands.watch import build_watch_config
from antenna.cli.main import cli
from antenna.config import AntennaConfig, LedgerConfig, WatchConfig
from antenna.events.event_log import append_event
from antenna.events.models import EventSeverity


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "ledger": {
                    "system_path": str(tmp_path / "system" / "accepted-risks.jsonl"),
                    "user_path": str(tmp_path / "user" / "accepted-risks.jsonl"),
                },
                "watch": {"sessions_dir": str(tmp_path / "agents")},
                "incident": {
                    "events_file": str(tmp_path / "events.jsonl"),
                    "gateway_log_path": str(tmp_path / "gateway.log"),
                },
            }
        )
    )
    return path


def _ledger_file(tmp_path: Path) -> Path:
    """Whichever ledger the CLI resolved (system when run as root)."""
    for candidate in (tmp_path / "system" / "accepted-risks.jsonl", tmp_path / "user" / "accepted-risks.jsonl"):
        if candidate.exists():
            return candidate
    raise AssertionError("no ledger written")


class TestRoot:
    """Tests for the root command."""

    def test_version(self, runner: CliRunner) -> None:
        """--version prints the package version."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_without_command(self, runner: CliRunner) -> None:
        """Without a subcommand the help text is shown."""
        result = runner.invoke(cli, [])

        assert result.exit_code == 0
        assert "accept" in result.output
        assert "Quick Start:" in result.output

    def test_invalid_config_exits_2(self, runner: CliRunner, tmp_path: Path) -> None:
        """An invalid config file fails with exit code 2."""
        # Arrange
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"watch": {"kill_on": "sometimes"}}))

        # Act
        result = runner.invoke(cli, ["--config", str(bad), "acceptances", "list"])

        # Assert
        assert result.exit_code == 2
        assert "watch.kill_on" in result.output

    def test_missing_config_exits_2(self, runner: CliRunner, tmp_path: Path) -> None:
        """An explicit config path that does not exist fails with exit code 2."""
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.json"), "acceptances", "list"])

        assert result.exit_code == 2


class TestInit:
    """Tests for the init command."""

    def test_writes_default_config(self, runner: CliRunner, tmp_path: Path) -> None:
        """init writes a loadable config file with owner-only permissions."""
        # Arrange
        path = tmp_path / "antenna" / "config.json"

        # Act
        result = runner.invoke(cli, ["--config", str(path), "init"])

        # Assert
        assert result.exit_code == 0, result.output
        assert "Configuration saved to" in result.output
        assert AntennaConfig.load_from_file(path) == AntennaConfig()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_keeps_existing_config(self, runner: CliRunner, config_file: Path) -> None:
        """An existing config is not overwritten without --force."""
        # Arrange
        before = config_file.read_text()

        # Act
        result = runner.invoke(cli, ["--config", str(config_file), "init"])

        # Assert
        assert result.exit_code == 1
        assert "--force" in result.output
        assert config_file.read_text() == before

    def test_force_replaces_invalid_config(self, runner: CliRunner, tmp_path: Path) -> None:
        """--force rewrites a config that would not even load."""
        # Arrange
        path = tmp_path / "config.json"
        path.write_text("{not json")

        # Act
        result = runner.invoke(cli, ["--config", str(path), "init", "--force"])

        # Assert
        assert result.exit_code == 0, result.output
        assert AntennaConfig.load_from_file(path) == AntennaConfig()


class TestAccept:
    """Tests for accept and acceptances."""

    def test_accept_then_verify(self, runner: CliRunner, config_file: Path) -> None:
        """An accepted risk is listed and the chain verifies."""
        # Act
        accepted = runner.invoke(
            cli,
            ["--config", str(config_file), "accept", "CHAN-003", "-r", "Internal channel", "-m", "VPN only, Weekly review"],
        )
        listed = runner.invoke(cli, ["--config", str(config_file), "acceptances", "list"])
        verified = runner.invoke(cli, ["--config", str(config_file), "acceptances", "verify"])

        # Assert
        assert accepted.exit_code == 0, accepted.output
        assert "Accepted CHAN-003" in accepted.output
        assert "VPN only, Weekly review" in accepted.output
        assert "CHAN-003" in listed.output
        assert "active" in listed.output
        assert verified.exit_code == 0
        assert "Hash chain intact (1 records)" in verified.output

    def test_accept_requires_reason(self, runner: CliRunner, config_file: Path) -> None:
        """--reason is mandatory."""
        result = runner.invoke(cli, ["--config", str(config_file), "accept", "CHAN-003"])

        assert result.exit_code == 2

    def test_expires_must_be_positive(self, runner: CliRunner, config_file: Path) -> None:
        """A non-positive expiration is rejected before anything is written."""
        result = runner.invoke(
            cli, ["--config", str(config_file), "accept", "CHAN-003", "-r", "x", "--expires", "0"]
        )

        assert result.exit_code == 2

    def test_broken_chain_refuses_accept(self, runner: CliRunner, config_file: Path, tmp_path: Path) -> None:
        """After tampering, verify exits 1 and accept writes nothing."""
        # Arrange
        for finding in ("CHAN-003", "TOOL-001"):
            runner.invoke(cli, ["--config", str(config_file), "accept", finding, "-r", "ok"])
        ledger_file = _ledger_file(tmp_path)
        lines = ledger_file.read_text().splitlines()
        lines[0] = lines[0].replace('"ok"', '"tampered"')
        ledger_file.write_text("\n".join(lines) + "\n")

        # Act
        verified = runner.invoke(cli, ["--config", str(config_file), "acceptances", "verify"])
        accepted = runner.invoke(cli, ["--config", str(config_file), "accept", "NET-001", "-r", "later"])

        # Assert
        assert verified.exit_code == 1
        assert "Chain broken at line 2" in verified.output
        assert accepted.exit_code == 1
        assert "Refusing" in accepted.output
        assert len(ledger_file.read_text().splitlines()) == 2

    def test_summary(self, runner: CliRunner, config_file: Path) -> None:
        """summary reports totals and the latest active acceptance per finding."""
        runner.invoke(cli, ["--config", str(config_file), "accept", "CHAN-003", "-r", "first"])
        runner.invoke(cli, ["--config", str(config_file), "accept", "CHAN-003", "-r", "renewed"])

        result = runner.invoke(cli, ["--config", str(config_file), "acceptances", "summary"])

        assert result.exit_code == 0
        assert "Total: 2" in result.output
        assert "Active: 2" in result.output
        assert "renewed" in result.output

    def test_list_empty(self, runner: CliRunner, config_file: Path) -> None:
        """An empty ledger lists nothing."""
        result = runner.invoke(cli, ["--config", str(config_file), "acceptances", "list"])

        assert result.exit_code == 0
        assert "No accepted risks." in result.output

    def test_list_all_marks_expired(self, runner: CliRunner, config_file: Path, tmp_path: Path) -> None:
        """Expired acceptances appear only with --all, marked expired."""
        # Arrange
        ledger_path = resolve_ledger_path(
            LedgerConfig(
                system_path=tmp_path / "system" / "accepted-risks.jsonl",
                user_path=tmp_path / "user" / "accepted-risks.jsonl",
            )
        )
        past = datetime.now(timezone.utc) - timedelta(days=60)
        AcceptanceLedger(ledger_path, clock=lambda: past).append("OLD-001", "lapsed", expiration_days=30)

        # Act
        default = runner.invoke(cli, ["--config", str(config_file), "acceptances", "list"])
        everything = runner.invoke(cli, ["--config", str(config_file), "acceptances", "list", "--all"])

        # Assert
        assert "No accepted risks." in default.output
        assert "OLD-001" in everything.output
        assert "expired" in everything.output


class TestIncident:
    """Tests for the incident command."""

    def test_requires_last(self, runner: CliRunner, config_file: Path) -> None:
        """Without --last the command is a usage error."""
        result = runner.invoke(cli, ["--config", str(config_file), "incident"])

        assert result.exit_code == 2

    def test_no_incident(self, runner: CliRunner, config_file: Path) -> None:
        """With no recent events there is no incident."""
        result = runner.invoke(cli, ["--config", str(config_file), "incident", "--last"])

        assert result.exit_code == 0
        assert "No incident in the last hour." in result.output

    def test_json_report(self, runner: CliRunner, config_file: Path, tmp_path: Path, make_event) -> None:
        """--json prints the full report, linking the TOOL acceptance."""
        # Arrange
        runner.invoke(cli, ["--config", str(config_file), "accept", "TOOL-001", "-r", "builds"])
        event = make_event(
            "Sensitive file access: /home/openclaw/.ssh/id_rsa",
            severity=EventSeverity.HIGH,
            timestamp=datetime.now(timezone.utc),
        )
        append_event(tmp_path / "events.jsonl", event)

        # Act
        result = runner.invoke(cli, ["--config", str(config_file), "incident", "--last", "--json"])

        # Assert
        assert result.exit_code == 0, result.output
        report = json.loads(result.output[result.output.index("{"):])
        assert report["summary"] == event.message
        assert [c["acceptance_id"] for c in report["contributions"]] == ["TOOL-001"]
        assert "Re-evaluate sandbox settings" in report["recommendations"]

    def test_text_report(self, runner: CliRunner, config_file: Path, tmp_path: Path, make_event) -> None:
        """The text report shows the timeline and recommendations."""
        append_event(
            tmp_path / "events.jsonl",
            make_event("Secret detected", severity=EventSeverity.CRITICAL, timestamp=datetime.now(timezone.utc)),
        )

        result = runner.invoke(cli, ["--config", str(config_file), "incident", "--last"])

        assert result.exit_code == 0
        assert "Timeline" in result.output
        assert "Secret detected" in result.output
        assert "Recommendations" in result.output


class TestBuildWatchConfig:
    """Tests for merging watch options over the configured values."""

    def test_none_keeps_configured_values(self) -> None:
        """Unset options leave the configuration untouched."""
        base = WatchConfig(kill_on="high", max_kills_per_hour=5)

        merged = build_watch_config(base, {"kill_on": None, "max_kills_per_hour": None})

        assert merged == base

    def test_overrides_applied(self, tmp_path: Path) -> None:
        """Given options replace configured values."""
        merged = build_watch_config(
            WatchConfig(),
            {"kill_on": "critical", "restart_after_seconds": 300, "output_file": tmp_path / "e.jsonl"},
        )

        assert merged.kill_on == "critical"
        assert merged.restart_after_seconds == 300
        assert merged.output_file == tmp_path / "e.jsonl"

    def test_off_disables_kill_switch(self) -> None:
        """--kill-on off turns a configured threshold off."""
        merged = build_watch_config(WatchConfig(kill_on="critical"), {"kill_on": "off"})

        assert merged.kill_on is None
