"""Tests for CLI commands."""
import json
import pytest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import yaml
from click.testing import CliRunner
from main import cli

from conftest import rule_config


@pytest.fixture
def runner(tmp_path):
    return CliRunner(env={
        "METRICWATCH_DB_PATH": str(tmp_path / "cli.db"),
        "METRICWATCH_ORG": "org-cli",
    })


def test_cli_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "metricwatch" in result.output


def test_cli_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output


def test_rules_help(runner):
    result = runner.invoke(cli, ["rules", "--help"])
    assert result.exit_code == 0
    for cmd in ("create", "load", "list", "enable", "disable", "test"):
        assert cmd in result.output


def test_alerts_help(runner):
    result = runner.invoke(cli, ["alerts", "--help"])
    assert result.exit_code == 0
    for cmd in ("list", "ack", "resolve"):
        assert cmd in result.output


def test_alerts_list_status_choices(runner):
    result = runner.invoke(cli, ["alerts", "list", "--status", "open"])
    assert result.exit_code == 2
    assert "active" in result.output and "resolved" in result.output


def test_org_required(tmp_path):
    runner = CliRunner(env={"METRICWATCH_DB_PATH": str(tmp_path / "cli.db"), "METRICWATCH_ORG": ""})
    result = runner.invoke(cli, ["health"])
    assert result.exit_code == 2
    assert "--org" in result.output


def test_record_and_health(runner):
    result = runner.invoke(cli, ["record", "cpu_usage", "50", "--source", "web-1", "--type", "system_cpu"])
    assert result.exit_code == 0, result.output
    assert "Recorded" in result.output

    result = runner.invoke(cli, ["health", "--json"])
    assert result.exit_code == 0
    summary = json.loads(result.output)
    assert summary["system_metrics"]["cpu_usage"] == 50
    assert summary["overall_status"] == "healthy"


def test_record_invalid_type_fails(runner):
    result = runner.invoke(cli, ["record", "cpu_usage", "50", "--source", "web-1", "--type", "bogus"])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_bad_tag(runner):
    result = runner.invoke(cli, ["record", "cpu_usage", "50", "--source", "web-1", "--tag", "novalue"])
    assert result.exit_code == 2


def test_rule_create_and_alert(runner, tmp_path):
    rule_file = tmp_path / "rule.yaml"
    rule_file.write_text(yaml.safe_dump(rule_config()))
    result = runner.invoke(cli, ["rules", "create", str(rule_file), "--user", "alice"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["record", "cpu_usage", "95", "--source", "web-1", "--type", "system_cpu"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["alerts", "list", "--status", "active"])
    assert result.exit_code == 0
    assert "WARNING" in result.output


def test_rules_load_seed(runner):
    result = runner.invoke(cli, ["rules", "load"])
    assert result.exit_code == 0, result.output
    assert "Loaded" in result.output
    assert "Loaded 4" in result.output
    assert "High" in runner.invoke(cli, ["rules", "list"]).output


def test_import_json(runner, tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text(json.dumps({"metrics": [
        {"metric_name": "memory_usage", "metric_type": "system_memory", "source": "web-1", "value": 40},
        {"metric_name": "memory_usage", "metric_type": "system_memory", "source": "web-2", "value": 45},
    ]}))
    result = runner.invoke(cli, ["import", str(path)])
    assert result.exit_code == 0, result.output
    assert "Imported 2" in result.output


def test_import_csv_rejects_bad_row(runner, tmp_path):
    path = tmp_path / "metrics.csv"
    path.write_text("metric_name,metric_type,source,value\n"
                    "cpu_usage,system_cpu,web-1,10\n"
                    "cpu_usage,not_a_type,web-1,20\n")
    result = runner.invoke(cli, ["import", str(path)])
    assert result.exit_code == 1


def test_baseline_without_data_fails(runner):
    result = runner.invoke(cli, ["baseline", "cpu_usage", "--source", "web-1"])
    assert result.exit_code == 1
    assert "Insufficient" in result.output


def test_ack_unknown_alert(runner):
    result = runner.invoke(cli, ["alerts", "ack", "missing", "--user", "bob"])
    assert result.exit_code == 1


def test_security_record(runner):
    result = runner.invoke(cli, ["security", "record", "login_failed", "--severity", "warning",
                                 "--category", "auth", "--title", "Failed login", "--source", "sso",
                                 "--data", '{"user": "root"}'])
    assert result.exit_code == 0, result.output
    assert "security event" in result.output


def test_schedule_once_without_jobs(runner):
    result = runner.invoke(cli, ["schedule", "--once"])
    assert result.exit_code == 0
    assert "0 job(s) succeeded" in result.output
