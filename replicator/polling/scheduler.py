"""
    폴링 스케줄러 - 조회 -> 변경 감지 -> emit -> 대기 반복
"""
import threading
import time
import logging
from datetime import datetime
from enum import Enum
from typing import Callable

from ..cancellation import CancellationToken
from ..cdc.detector import ChangeDetector, CycleResult, DetectorState
from ..cdc.events import ChangeKind
from ..cdc.tag_template import TagTemplate
from ..database.row_source import RowSource
from ..errors import PollCancelled
from ..sinks.base import Sink

logger = logging.getLogger(__name__)


class PollerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SLEEPING = "sleeping"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ReplicatorPollingScheduler:
    def __init__(self, row_source: RowSource, detector: ChangeDetector, tag: TagTemplate, sink: Sink,
                 query: str, poll_interval: float, token: CancellationToken,
                 clock: Callable[[], float] = time.time):
        """폴링 스케줄러 초기화"""
        self.row_source = row_source
        self.detector = detector
        self.tag = tag
        self.sink = sink
        self.query = query
        self.poll_interval = poll_interval
        self.clock = clock
        self._stop_event = token  # row source 재시도 대기와 같은 토큰 공유
        self.detector_state = DetectorState()
        self.state = PollerState.IDLE
        self.last_check = None
        self.last_error = None
        self.cycles = 0
        self.event_counts = {kind.value: 0 for kind in ChangeKind}
        self.polling_thread = None
        logger.info(f"폴링 스케줄러 초기화 완료 - query: [{query}] interval: {poll_interval}sec")

    @property
    def is_running(self) -> bool:
        return self.polling_thread is not None and self.polling_thread.is_alive()

    def start(self) -> None:
        """백그라운드 폴링 시작"""
        if self.is_running:
            logger.warning("폴링 스케줄러가 이미 실행중입니다.")
            return
        self._stop_event.reset()
        self.polling_thread = threading.Thread(target=self._polling_loop, name="replicator-poller", daemon=True)
        self.polling_thread.start()
        logger.info("폴링 스케줄러 시작 완료")

    def stop(self, timeout: float = 5) -> None:
        """폴링 중지 - sleep / 재시도 대기 중이어도 바로 깨워서 종료"""
        self._stop_event.cancel()
        if self.polling_thread and self.polling_thread.is_alive():
            self.polling_thread.join(timeout=timeout)
            if self.polling_thread.is_alive():
                # 연결은 폴링 스레드 소유 - 스레드가 끝나면서 직접 정리
                logger.warning(f"폴링 스레드가 {timeout}초 안에 종료되지 않았습니다. 연결은 스레드 종료 시 정리됩니다.")
                return
        if self.polling_thread is None:
            self.row_source.close()
        if self.state is not PollerState.FAILED:
            self.state = PollerState.CANCELLED
        logger.info("폴링 스케줄러 종료 완료")

    def reset(self) -> None:
        """감지 상태 초기화 - 재시작 시 모든 row를 새로 학습"""
        if self.is_running:
            raise RuntimeError("실행 중에는 상태를 초기화할 수 없습니다.")
        self.detector_state = DetectorState()
        self.state = PollerState.IDLE
        self.last_error = None

    def get_status(self) -> dict:
        """폴링 상태 조회"""
        return {
            "state": self.state.value,
            "is_running": self.is_running,
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "poll_interval": self.poll_interval,
            "cycles": self.cycles,
            "events": dict(self.event_counts),
            "tracked_keys": len(self.detector_state.fingerprints),
            "last_error": self.last_error
        }

    def run_cycle(self) -> CycleResult:
        """폴링 1회 수행 - 조회, 변경 감지, emit"""
        self.state = PollerState.RUNNING
        self.last_check = datetime.now()
        rows = self.row_source.fetch(self.query)
        result = self.detector.process_cycle(self.detector_state, rows)

        timestamp = int(self.clock())
        for event in result.events:
            self.sink.emit(self.tag.render(event.kind), timestamp, event.record)
            self.event_counts[event.kind.value] += 1
        self.cycles += 1

        if result.events:
            logger.info(
                f"변경분 감지: insert {result.count(ChangeKind.INSERT)}, "
                f"update {result.count(ChangeKind.UPDATE)}, delete {result.count(ChangeKind.DELETE)}"
            )
        else:
            logger.debug("변경분 없음")
        return result

    def _polling_loop(self) -> None:
        """폴링 작업 수행"""
        # stop 신호가 오지 않은 동안 계속 실행
        try:
            while not self._stop_event.cancelled:
                self.run_cycle()
                self.state = PollerState.SLEEPING
                if self._stop_event.sleep(self.poll_interval):
                    break
            self.state = PollerState.CANCELLED
        except PollCancelled:
            self.state = PollerState.CANCELLED
            logger.info("중지 요청으로 폴링 종료")
        except Exception as e:
            # 자동 재시작 없음 - 상위 관리자가 판단
            self.state = PollerState.FAILED
            self.last_error = f"{type(e).__name__}: {e}"
            logger.exception(f"폴링 루프 오류로 종료: {e}")
        finally:
            try:
                self.row_source.close()
            except Exception as e:
                logger.error(f"DB 연결 종료 실패: {e}")
