"""Tests for alert recording, severity and cooldown gating."""

import pytest

from flowscope.exceptions import ThresholdConfigError
from flowscope.models import Alert, AlertSeverity
from flowscope.persistence.reader import alert_history
from flowscope.telemetry import AlertGate, alert_severity, describe_alert, record_alert


class TestAlertSeverity:
    @pytest.mark.parametrize(
        "actual,expected",
        [
            (150.0, AlertSeverity.CRITICAL),
            (200.0, AlertSeverity.CRITICAL),
            (120.0, AlertSeverity.WARNING),
            (149.9, AlertSeverity.WARNING),
            (119.9, AlertSeverity.INFO),
            (100.0, AlertSeverity.INFO),
        ],
    )
    def test_ratio_bands(self, actual, expected):
        assert alert_severity(actual, 100.0) is expected

    @pytest.mark.parametrize("threshold", [0, -5])
    def test_unusable_threshold(self, threshold):
        with pytest.raises(ThresholdConfigError) as exc_info:
            alert_severity(10.0, threshold)
        assert exc_info.value.threshold == threshold


class TestRecordAlert:
    def test_persists_and_returns_id(self, db, base_ms):
        alert = record_alert(db.conn, "cpu", 75, 91.234, 5.0, now_ms=base_ms)
        assert alert.id is not None
        assert alert.created_at == base_ms

        (stored,) = alert_history(db.conn)
        assert stored.id == alert.id
        assert stored.metric_type == "cpu"
        assert stored.actual_value == pytest.approx(91.234)

    def test_no_deduplication(self, db, base_ms):
        first = record_alert(db.conn, "memory", 80, 90, 5.0, now_ms=base_ms)
        second = record_alert(db.conn, "memory", 80, 90, 5.0, now_ms=base_ms)
        assert first.id != second.id
        assert len(alert_history(db.conn)) == 2

    def test_unknown_metric_rejected(self, db):
        with pytest.raises(ValueError):
            record_alert(db.conn, "disk", 80, 90, 5.0)

    def test_history_newest_first(self, db, base_ms):
        record_alert(db.conn, "cpu", 75, 80, 5.0, now_ms=base_ms - 1000)
        record_alert(db.conn, "eventLoop", 20, 40, 5.0, now_ms=base_ms)
        assert [a.metric_type for a in alert_history(db.conn)] == ["eventLoop", "cpu"]
        assert len(alert_history(db.conn, limit=1)) == 1


class TestDescribeAlert:
    def test_severity_derived_at_read_time(self):
        data = describe_alert(Alert("cpu", 50.0, 80.5, 5.0, created_at=1, id=3))
        assert data["severity"] == "critical"
        assert data["actual_value"] == 80.5
        assert data["id"] == 3

    def test_unusable_threshold_falls_back_to_info(self):
        assert describe_alert(Alert("cpu", 0.0, 80.0, 5.0, created_at=1))["severity"] == "info"


class TestAlertGate:
    def test_first_alert_allowed(self):
        assert AlertGate(1000).ready("cpu", 0)

    def test_cooldown(self):
        gate = AlertGate(1000)
        gate.mark("cpu", 5000)
        assert not gate.ready("cpu", 5999)
        assert gate.ready("cpu", 6000)

    def test_metrics_independent(self):
        gate = AlertGate(1000)
        gate.mark("cpu", 5000)
        assert gate.ready("memory", 5001)

    def test_reset(self):
        gate = AlertGate(1000)
        gate.mark("cpu", 5000)
        gate.reset()
        assert gate.ready("cpu", 5001)
