"""Shared test fixtures for flowscope tests."""

import pytest

from flowscope.models import MetricSample, now_ms
from flowscope.persistence.database import AnalyzerDB
from flowscope.scan import FlowSource, StaticCollector, UnitSource

# Fixed "now" for window arithmetic: 2023-11-14T22:13:20Z
BASE_MS = 1_700_000_000_000


@pytest.fixture
def base_ms():
    return BASE_MS


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "flowscope.db"


@pytest.fixture
def db(db_path):
    """An open, migrated database in a temporary directory."""
    with AnalyzerDB(db_path) as database:
        yield database


@pytest.fixture
def make_sample():
    """Factory for samples; every metric defaults to a quiet value."""

    def _make(timestamp, cpu=10.0, memory=20.0, lag=1.0, rss=50_000_000):
        return MetricSample(
            timestamp=timestamp,
            cpu_percent=cpu,
            memory_percent=memory,
            memory_rss=rss,
            event_loop_lag_ms=lag,
        )

    return _make


@pytest.fixture
def clean_source():
    return "const value = msg.payload * 2;\nmsg.payload = value;\nreturn msg;"


@pytest.fixture
def debug_source():
    """Source carrying at least one trait of every level."""
    return "\n".join(
        [
            "// TODO: remove before release",
            "let unused = 1;",
            'console.log("payload", msg.payload);',
            "node.warn(msg);",
            "",
            "",
            'msg.topic = "test";',
            "return;",
        ]
    )


@pytest.fixture
def static_collector(clean_source, debug_source):
    """Two flows with one clean and one debug-ridden node, plus an empty flow."""
    return StaticCollector(
        flows=[
            FlowSource("flow-a", "Flow A"),
            FlowSource("flow-b", "Flow B"),
            FlowSource("flow-empty", "Empty"),
        ],
        units=[
            UnitSource("flow-a", "node-1", "Clean node", clean_source),
            UnitSource("flow-b", "node-2", "Debug node", debug_source),
            UnitSource("flow-b", "node-3", "Clean twin", clean_source),
        ],
    )


class SteadySampler:
    """Sampler stand-in returning quiet readings stamped with the current time."""

    def reset(self):
        pass

    async def sample(self):
        return MetricSample(
            timestamp=now_ms(),
            cpu_percent=5.0,
            memory_percent=10.0,
            memory_rss=10_000_000,
            event_loop_lag_ms=0.5,
        )


@pytest.fixture
def steady_sampler():
    return SteadySampler()
