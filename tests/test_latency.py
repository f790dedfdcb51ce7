"""Tests for the latency harness."""

import itertools

import pytest

from ddp_client.latency import LatencyHarness
from ddp_client.types import LatencyRecord, Phase


class TestCompletion:
    def test_record_emitted_after_all_phases(self):
        records = []
        harness = LatencyHarness(records.append)
        assert harness.mark("m1", Phase.ISSUE, at=10.0) is None
        assert harness.mark("m1", Phase.ACK, at=10.2) is None
        record = harness.mark("m1", Phase.DELIVER, at=10.5)

        assert records == [record]
        assert record.key == "m1"
        assert record.ack_ms == pytest.approx(200.0)
        assert record.deliver_ms == pytest.approx(500.0)

    @pytest.mark.parametrize(
        "order", list(itertools.permutations([Phase.ISSUE, Phase.ACK, Phase.DELIVER]))
    )
    def test_any_phase_order(self, order):
        times = {Phase.ISSUE: 1.0, Phase.ACK: 1.1, Phase.DELIVER: 1.3}
        records = []
        harness = LatencyHarness(records.append)
        for phase in order:
            harness.mark("k", phase, at=times[phase])

        assert len(records) == 1
        assert records[0].ack_ms == pytest.approx(100.0)
        assert records[0].deliver_ms == pytest.approx(300.0)
        assert harness.pending == 0

    def test_interleaved_keys(self):
        records = []
        harness = LatencyHarness(records.append)
        harness.mark("a", Phase.ISSUE, at=0.0)
        harness.mark("b", Phase.ISSUE, at=1.0)
        harness.mark("b", Phase.DELIVER, at=1.5)
        harness.mark("a", Phase.ACK, at=0.1)
        assert harness.pending == 2
        harness.mark("b", Phase.ACK, at=1.2)
        harness.mark("a", Phase.DELIVER, at=0.4)

        assert [r.key for r in records] == ["b", "a"]
        assert harness.pending == 0
        assert harness.completed == 2

    def test_no_duplicate_reports(self):
        records = []
        harness = LatencyHarness(records.append)
        for phase in (Phase.ISSUE, Phase.ACK, Phase.DELIVER):
            harness.mark("k", phase, at=0.0)
        harness.mark("k", Phase.DELIVER, at=1.0)
        assert len(records) == 1
        assert harness.is_pending("k") is True

    def test_phase_accepts_string(self):
        harness = LatencyHarness()
        harness.mark("k", "issue", at=0.0)
        harness.mark("k", "ack", at=0.0)
        assert harness.mark("k", "deliver", at=0.0) is not None

    def test_default_clock(self):
        ticks = iter([1.0, 1.25, 1.5])
        harness = LatencyHarness(clock=lambda: next(ticks))
        harness.mark("k", Phase.ISSUE)
        harness.mark("k", Phase.ACK)
        record = harness.mark("k", Phase.DELIVER)
        assert record.ack_ms == pytest.approx(250.0)
        assert record.deliver_ms == pytest.approx(500.0)


class TestBookkeeping:
    def test_discard_clears_partial(self):
        harness = LatencyHarness()
        harness.mark("k", Phase.ISSUE, at=0.0)
        harness.mark("k", Phase.DELIVER, at=0.1)
        harness.discard("k")
        assert harness.is_pending("k") is False
        assert harness.pending == 0

    def test_keys_with_dashes(self):
        harness = LatencyHarness()
        harness.mark("a-b-c", Phase.ISSUE, at=0.0)
        assert harness.pending == 1
        assert harness.is_pending("a-b-c") is True


class TestRecord:
    def test_to_csv(self):
        from datetime import datetime

        record = LatencyRecord(
            key="k",
            issued_at=5.0,
            acked_at=5.1234,
            delivered_at=5.3456,
            completed_at=datetime(2024, 1, 2, 3, 4, 5),
        )
        assert record.to_csv() == "2024-01-02 03:04:05,123,346"

    def test_completed_at_is_utc(self):
        from datetime import UTC

        record = LatencyRecord(key="k", issued_at=0.0, acked_at=0.1, delivered_at=0.2)
        assert record.completed_at.tzinfo is UTC
