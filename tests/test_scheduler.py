"""
폴링 스케줄러 테스트
"""
import threading
import time

import pytest

from replicator.cancellation import CancellationToken
from replicator.cdc.detector import ChangeDetector
from replicator.cdc.tag_template import TagTemplate
from replicator.errors import PollCancelled
from replicator.polling.scheduler import PollerState, ReplicatorPollingScheduler
from tests.conftest import FakeRowSource, FakeToken, MemorySink


class BlockingRowSource(FakeRowSource):
    """fetch가 release 될 때까지 멈춤 - close 호출 스레드 기록"""

    def __init__(self):
        super().__init__([[]])
        self.fetch_started = threading.Event()
        self.release = threading.Event()
        self.close_calls = []

    def fetch(self, query):
        self.fetch_started.set()
        self.release.wait(5)
        return super().fetch(query)

    def close(self):
        self.close_calls.append(threading.current_thread().name)
        super().close()

TAG = "repl.${event}.${primary_key}"


def make_scheduler(batches, token, sink=None, enable_delete=True, interval=30):
    return ReplicatorPollingScheduler(
        row_source=FakeRowSource(batches),
        detector=ChangeDetector("id", enable_delete=enable_delete),
        tag=TagTemplate(TAG, "id"),
        sink=sink or MemorySink(),
        query="SELECT id, v FROM items",
        poll_interval=interval,
        token=token,
        clock=lambda: 1700000000.7,
    )


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestRunCycle:
    def test_emits_tagged_events(self, fake_token, memory_sink):
        scheduler = make_scheduler([
            [{"id": 1, "v": "a"}],
            [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}],
            [{"id": 2, "v": "b"}],
        ], fake_token, memory_sink)

        for _ in range(3):
            scheduler.run_cycle()

        assert memory_sink.emitted == [
            ("repl.insert.id", 1700000000, {"id": 1, "v": "a"}),
            ("repl.insert.id", 1700000000, {"id": 2, "v": "b"}),
            ("repl.delete.id", 1700000000, {"id": 1}),
        ]
        status = scheduler.get_status()
        assert status["cycles"] == 3
        assert status["events"] == {"insert": 2, "update": 0, "delete": 1}
        assert status["tracked_keys"] == 1

    def test_update_event(self, fake_token, memory_sink):
        scheduler = make_scheduler([[{"id": 1, "v": "a"}], [{"id": 1, "v": "b"}]], fake_token, memory_sink)
        scheduler.run_cycle()
        scheduler.run_cycle()
        assert memory_sink.tags == ["repl.insert.id", "repl.update.id"]

    def test_passes_configured_query(self, fake_token):
        scheduler = make_scheduler([[]], fake_token)
        scheduler.run_cycle()
        assert scheduler.row_source.queries == ["SELECT id, v FROM items"]


class TestPollingLoop:
    def test_sleeps_between_cycles_until_cancelled(self, memory_sink):
        token = FakeToken(cancel_after=3)
        scheduler = make_scheduler([[{"id": 1, "v": "a"}]], token, memory_sink, interval=45)

        scheduler.start()
        scheduler.polling_thread.join(timeout=5)

        assert scheduler.cycles == 3
        assert token.sleeps == [45, 45, 45]
        assert scheduler.state is PollerState.CANCELLED
        assert memory_sink.tags == ["repl.insert.id"]

    def test_missing_key_stops_loop(self, fake_token, memory_sink, caplog):
        scheduler = make_scheduler([[{"id": 1, "v": "a"}], [{"v": "no key"}]], fake_token, memory_sink)

        scheduler.start()
        scheduler.polling_thread.join(timeout=5)

        assert not scheduler.is_running
        assert scheduler.state is PollerState.FAILED
        assert scheduler.get_status()["last_error"].startswith("MissingKeyError")
        assert scheduler.cycles == 1
        assert "폴링 루프 오류로 종료" in caplog.text
        assert "Traceback" in caplog.text

    def test_cancel_inside_fetch_ends_quietly(self, fake_token):
        scheduler = make_scheduler([[]], fake_token)

        def cancelled_fetch(query):
            raise PollCancelled("중지")

        scheduler.row_source.fetch = cancelled_fetch
        scheduler.start()
        scheduler.polling_thread.join(timeout=5)
        assert scheduler.state is PollerState.CANCELLED

    def test_stop_interrupts_sleep(self):
        scheduler = make_scheduler([[{"id": 1, "v": "a"}]], CancellationToken(), interval=3600)
        scheduler.start()
        assert wait_until(lambda: scheduler.state is PollerState.SLEEPING)

        started = time.monotonic()
        scheduler.stop()

        assert time.monotonic() - started < 2
        assert not scheduler.is_running
        assert scheduler.state is PollerState.CANCELLED
        assert scheduler.row_source.closed

    def test_double_start_warns(self, caplog):
        scheduler = make_scheduler([[]], CancellationToken(), interval=3600)
        scheduler.start()
        thread = scheduler.polling_thread
        scheduler.start()
        assert scheduler.polling_thread is thread
        assert "이미 실행중" in caplog.text
        scheduler.stop()

    def test_reset_after_failure_relearns_rows(self, fake_token, memory_sink):
        scheduler = make_scheduler([[{"id": 1, "v": "a"}], [{"v": "bad"}]], fake_token, memory_sink)
        scheduler.start()
        scheduler.polling_thread.join(timeout=5)
        assert scheduler.state is PollerState.FAILED

        scheduler.reset()
        assert scheduler.state is PollerState.IDLE
        assert scheduler.get_status()["tracked_keys"] == 0

    def test_reset_while_running_is_rejected(self):
        scheduler = make_scheduler([[]], CancellationToken(), interval=3600)
        scheduler.start()
        with pytest.raises(RuntimeError):
            scheduler.reset()
        scheduler.stop()

    def test_stop_timeout_leaves_connection_to_poll_thread(self):
        """조회 중 stop 타임아웃이면 연결은 폴링 스레드가 끝날 때 정리"""
        scheduler = make_scheduler([[]], CancellationToken(), interval=3600)
        source = BlockingRowSource()
        scheduler.row_source = source
        scheduler.start()
        assert source.fetch_started.wait(5)

        scheduler.stop(timeout=0.2)
        assert scheduler.is_running
        assert source.close_calls == []

        source.release.set()
        scheduler.polling_thread.join(timeout=5)
        assert not scheduler.is_running
        assert source.close_calls == ["replicator-poller"]
        assert scheduler.state is PollerState.CANCELLED

    def test_stop_without_start_closes_source(self, fake_token):
        scheduler = make_scheduler([[]], fake_token)
        scheduler.stop()
        assert scheduler.row_source.closed
        assert scheduler.state is PollerState.CANCELLED
