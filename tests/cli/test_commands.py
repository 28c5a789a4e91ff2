"""Tests for the flowscope command line."""

import json

import pytest
from typer.testing import CliRunner

from flowscope import __version__
from flowscope.cli import app
from flowscope.models import now_ms
from flowscope.persistence.database import AnalyzerDB
from flowscope.persistence.reader import latest_flow_records, recent_samples
from flowscope.persistence.retention import DAY_MS
from flowscope.persistence.writer import save_sample
from flowscope.telemetry import record_alert

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def flows_file(tmp_path, clean_source, debug_source):
    path = tmp_path / "flows.json"
    path.write_text(
        json.dumps(
            [
                {"id": "tab-a", "type": "tab", "label": "Flow A"},
                {"id": "tab-b", "type": "tab", "label": "Flow B"},
                {"id": "fn-1", "type": "function", "z": "tab-a", "name": "Clean", "func": clean_source},
                {"id": "fn-2", "type": "function", "z": "tab-b", "name": "Debug", "func": debug_source},
            ]
        )
    )
    return path


def _invoke(db_path, *args):
    return runner.invoke(app, ["--db", str(db_path), "-q", *args])


class TestGlobalOptions:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_bad_config_file(self, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text("colour = 'red'\n")
        result = runner.invoke(app, ["--config", str(config), "prune"])
        assert result.exit_code == 2
        assert "Configuration error" in result.stdout


class TestCheck:
    def test_clean_file(self, tmp_path, db_path, clean_source):
        source = tmp_path / "clean.js"
        source.write_text(clean_source)
        result = _invoke(db_path, "check", str(source), "--level", "3")
        assert result.exit_code == 0
        assert "No issues found" in result.stdout

    def test_json(self, tmp_path, db_path, debug_source):
        source = tmp_path / "debug.js"
        source.write_text(debug_source)
        result = _invoke(db_path, "check", str(source), "--level", "3", "--json")
        data = json.loads(result.stdout)
        assert data["qualityScore"] == 40.0
        assert data["qualityGrade"] == "D"
        assert len(data["issues"]) == 7

    def test_fail_under(self, tmp_path, db_path, debug_source):
        source = tmp_path / "debug.js"
        source.write_text(debug_source)
        assert _invoke(db_path, "check", str(source), "--fail-under", "75").exit_code == 1
        assert _invoke(db_path, "check", str(source), "--fail-under", "60").exit_code == 0


class TestScan:
    def test_json_report_and_records(self, flows_file, db_path):
        result = _invoke(db_path, "scan", str(flows_file), "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["flowsProcessed"] == 2
        assert {f["flowName"]: f["qualityScore"] for f in data["flows"]} == {
            "Flow A": 100.0,
            "Flow B": 50.0,
        }

        with AnalyzerDB(db_path) as db:
            assert len(latest_flow_records(db.conn)) == 2

    def test_table_output(self, flows_file, db_path):
        result = _invoke(db_path, "scan", str(flows_file), "--level", "2")
        assert result.exit_code == 0
        assert "Flow Quality" in result.stdout
        assert "Flagged Nodes" in result.stdout

    def test_unreadable_export(self, tmp_path, db_path):
        broken = tmp_path / "flows.json"
        broken.write_text("{not json")
        result = _invoke(db_path, "scan", str(broken))
        assert result.exit_code == 1
        assert "Scan aborted" in result.stdout


class TestAlertsAndPrune:
    def test_alerts_json(self, db_path):
        with AnalyzerDB(db_path) as db:
            record_alert(db.conn, "memory", 80.0, 100.0, 5.0)
        data = json.loads(_invoke(db_path, "alerts", "--json").stdout)
        assert [a["severity"] for a in data["alerts"]] == ["warning"]
        assert set(data["trends"]) == {"cpu", "memory", "eventLoop"}

    def test_no_alerts(self, db_path):
        result = _invoke(db_path, "alerts")
        assert result.exit_code == 0
        assert "No alerts recorded" in result.stdout

    def test_prune(self, db_path, make_sample):
        now = now_ms()
        with AnalyzerDB(db_path) as db:
            save_sample(db.conn, make_sample(now - 10 * DAY_MS))
            save_sample(db.conn, make_sample(now))
        result = _invoke(db_path, "prune", "--days", "7")
        assert result.exit_code == 0
        assert "Pruned 1 performance metrics" in result.stdout
        with AnalyzerDB(db_path) as db:
            assert len(recent_samples(db.conn)) == 1


class TestMonitor:
    def test_fixed_number_of_samples(self, db_path):
        result = _invoke(db_path, "monitor", "--samples", "2", "--interval", "0.01")
        assert result.exit_code == 0
        assert result.stdout.count("cpu") == 2
        with AnalyzerDB(db_path) as db:
            assert len(recent_samples(db.conn)) == 2

    def test_disabled_interval(self, db_path):
        result = _invoke(db_path, "monitor", "--interval", "0")
        assert result.exit_code == 1
        assert "Sampling disabled" in result.stdout
