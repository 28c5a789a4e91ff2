"""Tests for single-flight scan scheduling."""

import threading

from flowscope.scan import ScanScheduler, ScanState, ScanStatus


class TestScanScheduler:
    def test_completed_pass(self):
        scheduler = ScanScheduler()
        result = scheduler.run(lambda s: "report")
        assert result.status is ScanStatus.COMPLETED
        assert result.report == "report"
        assert result.accepted
        assert scheduler.state is ScanState.IDLE

    def test_state_during_pass(self):
        scheduler = ScanScheduler()
        seen = []

        def pass_fn(s):
            seen.append(s.state)
            s.completing()
            seen.append(s.state)

        scheduler.run(pass_fn)
        assert seen == [ScanState.SCANNING, ScanState.COMPLETING]
        assert not scheduler.is_scanning

    def test_second_request_rejected_while_running(self):
        scheduler = ScanScheduler()
        entered = threading.Event()
        release = threading.Event()
        results = []

        def slow_pass(s):
            entered.set()
            release.wait(5)
            return "first"

        worker = threading.Thread(target=lambda: results.append(scheduler.run(slow_pass)))
        worker.start()
        assert entered.wait(5)

        rejected = scheduler.run(lambda s: "second")
        release.set()
        worker.join(5)

        assert rejected.status is ScanStatus.ALREADY_RUNNING
        assert not rejected.accepted
        assert results[0].report == "first"
        assert scheduler.state is ScanState.IDLE

    def test_failing_pass_is_aborted_and_resets(self):
        scheduler = ScanScheduler()

        def broken(s):
            raise RuntimeError("boom")

        result = scheduler.run(broken)
        assert result.status is ScanStatus.ABORTED
        assert isinstance(result.error, RuntimeError)
        assert scheduler.state is ScanState.IDLE
        assert scheduler.run(lambda s: 1).status is ScanStatus.COMPLETED

    def test_completing_outside_pass_is_ignored(self):
        scheduler = ScanScheduler()
        scheduler.completing()
        assert scheduler.state is ScanState.IDLE
