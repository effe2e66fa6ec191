"""Tests for aumai_blackhole.cli: Click command interface."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from aumai_blackhole.cli import main

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SPEC: dict[str, object] = {
    "Type": "Blackhole",
    "Timeout": "10ms",
    "Targets": [{"Host": "10.0.0.5", "Direction": "INPUT"}, {"DstPorts": "8080"}],
}


def _write_spec_json(tmp_path: Path, data: dict[str, object]) -> Path:
    file_path = tmp_path / "blackhole.json"
    file_path.write_text(json.dumps(data), encoding="utf-8")
    return file_path


@pytest.fixture()
def patched_runner(fake_runner):
    with patch("aumai_blackhole.cli.build_runner", return_value=fake_runner):
        yield fake_runner


# ---------------------------------------------------------------------------
# --version / --help
# ---------------------------------------------------------------------------


class TestVersionAndHelp:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help_lists_subcommands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "block" in result.output
        assert "compile" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_requires_spec(self) -> None:
        result = CliRunner().invoke(main, ["run"])
        assert result.exit_code != 0

    def test_missing_file(self) -> None:
        result = CliRunner().invoke(main, ["run", "--spec", "/nonexistent/spec.json"])
        assert result.exit_code != 0

    def test_invalid_json(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("NOT JSON", encoding="utf-8")
        result = CliRunner().invoke(main, ["run", "--spec", str(bad)])
        assert result.exit_code != 0
        assert "Error loading fault spec" in result.output

    def test_applies_and_reverts(self, tmp_path: Path, patched_runner) -> None:
        path = _write_spec_json(tmp_path, _SPEC)
        result = CliRunner().invoke(main, ["run", "--spec", str(path)])
        assert result.exit_code == 0, result.output
        assert "done" in result.output
        assert patched_runner.applied == [
            "INPUT -s 10.0.0.5 -p all -j DROP",
            "INPUT -p all -dport 8080 -j DROP",
            "OUTPUT -p all -dport 8080 -j DROP",
        ]
        assert patched_runner.reverted == patched_runner.applied

    def test_json_output(self, tmp_path: Path, patched_runner) -> None:
        path = _write_spec_json(tmp_path, _SPEC)
        result = CliRunner().invoke(main, ["run", "--spec", str(path), "--json-output"])
        assert result.exit_code == 0, result.output
        parsed = json.loads(result.output[result.output.index("{") :])
        assert parsed["phase"] == "done"
        assert parsed["wait_outcome"] == "timeout"
        assert len(parsed["reverted_rules"]) == 3

    def test_yaml_spec(self, tmp_path: Path, patched_runner) -> None:
        path = tmp_path / "blackhole.yml"
        path.write_text(
            "timeout: 10ms\n"
            "targets:\n"
            "  - host: 10.0.0.9\n"
            "    protocol: udp\n"
            "    dstPorts: 53\n",
            encoding="utf-8",
        )
        result = CliRunner().invoke(main, ["run", "--spec", str(path)])
        assert result.exit_code == 0, result.output
        assert patched_runner.applied[0] == "INPUT -s 10.0.0.9 -p udp -dport 53 -j DROP"

    def test_validation_error_exits_nonzero(self, tmp_path: Path, patched_runner) -> None:
        path = _write_spec_json(tmp_path, {"Timeout": "10ms", "Targets": [{}]})
        result = CliRunner().invoke(main, ["run", "--spec", str(path)])
        assert result.exit_code == 1
        assert "Blackhole failed" in result.output
        assert patched_runner.calls == []

    def test_revert_failure_reports_leftover_rules(
        self, tmp_path: Path, runner_factory
    ) -> None:
        runner = runner_factory(fail_revert=2)
        path = _write_spec_json(tmp_path, _SPEC)
        with patch("aumai_blackhole.cli.build_runner", return_value=runner):
            result = CliRunner().invoke(main, ["run", "--spec", str(path)])
        assert result.exit_code == 1
        assert "still installed: INPUT -p all -dport 8080 -j DROP" in result.output
        assert "still installed: OUTPUT -p all -dport 8080 -j DROP" in result.output


# ---------------------------------------------------------------------------
# block
# ---------------------------------------------------------------------------


class TestBlockCommand:
    def test_single_target(self, patched_runner) -> None:
        result = CliRunner().invoke(
            main,
            ["block", "--host", "10.0.0.5", "--protocol", "TCP", "--dst-ports", "443", "--timeout", "10ms"],
        )
        assert result.exit_code == 0, result.output
        assert patched_runner.applied == [
            "INPUT -s 10.0.0.5 -p tcp -dport 443 -j DROP",
            "OUTPUT -d 10.0.0.5 -p tcp -dport 443 -j DROP",
        ]

    def test_direction_choice(self, patched_runner) -> None:
        result = CliRunner().invoke(
            main, ["block", "--src-ports", "1000:2000", "--direction", "output", "--timeout", "10ms"]
        )
        assert result.exit_code == 0, result.output
        assert patched_runner.applied == ["OUTPUT -p all -sport 1000:2000 -j DROP"]

    def test_nothing_to_block(self, patched_runner) -> None:
        result = CliRunner().invoke(main, ["block", "--timeout", "10ms"])
        assert result.exit_code == 1
        assert "at least one of" in result.output

    def test_bad_port(self, patched_runner) -> None:
        result = CliRunner().invoke(main, ["block", "--dst-ports", "http", "--timeout", "10ms"])
        assert result.exit_code == 1
        assert "Invalid destination port" in result.output

    def test_custom_iptables_binary(self, patched_runner) -> None:
        result = CliRunner().invoke(
            main,
            ["--iptables-bin", "iptables-legacy", "block", "--dst-ports", "22", "--timeout", "10ms"],
        )
        assert result.exit_code == 0, result.output
        assert {name for name, _ in patched_runner.calls} == {"iptables-legacy"}

    def test_settings_read_from_environment(self, fake_runner) -> None:
        env = {
            "AUMAI_BLACKHOLE_IPTABLES": "iptables-legacy",
            "AUMAI_BLACKHOLE_DIG": "/usr/bin/dig",
            "AUMAI_BLACKHOLE_DRY_RUN": "1",
        }
        with patch("aumai_blackhole.cli.build_runner", return_value=fake_runner) as build:
            result = CliRunner().invoke(
                main, ["block", "--dst-ports", "22", "--timeout", "10ms"], env=env
            )

        assert result.exit_code == 0, result.output
        settings = build.call_args.args[0]
        assert settings.iptables_binary == "iptables-legacy"
        assert settings.dig_binary == "/usr/bin/dig"
        assert settings.dry_run is True
        assert {name for name, _ in fake_runner.calls} == {"iptables-legacy"}

    def test_option_overrides_environment(self, fake_runner) -> None:
        with patch("aumai_blackhole.cli.build_runner", return_value=fake_runner) as build:
            result = CliRunner().invoke(
                main,
                ["--iptables-bin", "iptables-nft", "block", "--dst-ports", "22", "--timeout", "10ms"],
                env={"AUMAI_BLACKHOLE_IPTABLES": "iptables-legacy"},
            )

        assert result.exit_code == 0, result.output
        assert build.call_args.args[0].iptables_binary == "iptables-nft"


# ---------------------------------------------------------------------------
# compile
# ---------------------------------------------------------------------------


class TestCompileCommand:
    def test_prints_rules(self, tmp_path: Path, patched_runner) -> None:
        path = _write_spec_json(tmp_path, _SPEC)
        result = CliRunner().invoke(main, ["compile", "--spec", str(path)])
        assert result.exit_code == 0, result.output
        assert "iptables -A INPUT -s 10.0.0.5 -p all -j DROP" in result.output
        assert patched_runner.calls == []

    def test_json_output(self, tmp_path: Path, patched_runner) -> None:
        path = _write_spec_json(tmp_path, _SPEC)
        result = CliRunner().invoke(main, ["compile", "--spec", str(path), "--json-output"])
        assert result.exit_code == 0, result.output
        rules = json.loads(result.output)
        assert [r["chain"] for r in rules] == ["INPUT", "INPUT", "OUTPUT"]
        assert rules[0]["hosts"] == ["10.0.0.5"]

    def test_unresolvable_host(self, tmp_path: Path, patched_runner) -> None:
        path = _write_spec_json(tmp_path, {"Targets": [{"Host": "nowhere.test"}]})
        result = CliRunner().invoke(main, ["compile", "--spec", str(path)])
        assert result.exit_code == 1
        assert "No addresses found for host 'nowhere.test'" in result.output
