"""
공용 fixture - 가짜 토큰, 메모리 sink, 가짜 row source
"""
from typing import Any, Dict, Iterator, List, Optional

import pytest
from sqlalchemy import create_engine, text

from replicator.cancellation import CancellationToken
from replicator.database.retry import RetryPolicy
from replicator.database.row_source import RowSource
from replicator.sinks.base import Sink


class FakeToken(CancellationToken):
    """실제로 기다리지 않고 sleep 호출만 기록"""

    def __init__(self, cancel_after: Optional[int] = None):
        super().__init__()
        self.sleeps: List[float] = []
        self.cancel_after = cancel_after

    def sleep(self, seconds: float) -> bool:
        self.sleeps.append(seconds)
        if self.cancel_after is not None and len(self.sleeps) >= self.cancel_after:
            self.cancel()
        return self.cancelled


class MemorySink(Sink):
    def __init__(self):
        self.emitted: List[tuple] = []
        self.closed = False

    def emit(self, tag: str, timestamp: int, record: Dict[str, Any]) -> None:
        self.emitted.append((tag, timestamp, dict(record)))

    def close(self) -> None:
        self.closed = True

    @property
    def tags(self) -> List[str]:
        return [tag for tag, _, _ in self.emitted]


class FakeRowSource:
    """준비된 배치를 순서대로 반환 (배치가 끝나면 마지막 배치 반복)"""

    def __init__(self, batches: List[List[Dict[str, Any]]]):
        self.batches = batches
        self.queries: List[str] = []
        self.closed = False

    def fetch(self, query: str) -> Iterator[Dict[str, Any]]:
        self.queries.append(query)
        index = min(len(self.queries), len(self.batches)) - 1
        return iter([dict(row) for row in self.batches[index]])

    def health_check(self) -> dict:
        return {"is_connected": True}

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_token():
    return FakeToken()


@pytest.fixture
def memory_sink():
    return MemorySink()


@pytest.fixture
def sqlite_url(tmp_path):
    """items 테이블이 있는 SQLite 파일"""
    url = f"sqlite:///{tmp_path / 'source.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE items (id INTEGER PRIMARY KEY, v TEXT)"))
        conn.execute(text("INSERT INTO items (id, v) VALUES (1, 'a'), (2, 'b')"))
    engine.dispose()
    return url


@pytest.fixture
def sqlite_source(sqlite_url, fake_token):
    source = RowSource(sqlite_url, RetryPolicy(interval=30), fake_token)
    yield source
    source.close()
