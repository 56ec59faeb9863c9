"""
변경 감지기 - fingerprint 테이블 기반 insert / update / delete 분류
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

from ..errors import MissingKeyError
from .events import ChangeEvent, ChangeKind
from .fingerprint import fingerprint, normalize_row

logger = logging.getLogger(__name__)


@dataclass
class DetectorState:
    """
    폴링 사이클 간에 유지되는 상태 (메모리 전용, 재시작 시 초기화)
    """
    fingerprints: Dict[Any, bytes] = field(default_factory=dict)  # primary key -> fingerprint
    known_ids: List[Any] = field(default_factory=list)            # 직전 사이클의 id 목록


@dataclass
class CycleResult:
    events: List[ChangeEvent]
    known_ids: List[Any]

    def count(self, kind: ChangeKind) -> int:
        return sum(1 for event in self.events if event.kind is kind)


class ChangeDetector:
    def __init__(self, primary_key: str, enable_delete: bool = True):
        """변경 감지기 초기화"""
        self.primary_key = primary_key
        self.enable_delete = enable_delete

    def process_cycle(self, state: DetectorState, rows: Iterable[Mapping[str, Any]]) -> CycleResult:
        """
        한 사이클의 row 목록을 이전 상태와 비교해서 이벤트 생성

        - fingerprint 테이블에 없는 key -> insert
        - 있는데 fingerprint가 다르면 -> update
        - 직전 id 목록에 있었는데 이번에 없으면 -> delete (enable_delete 일 때만)
        state는 그 자리에서 갱신된다. 같은 배치 안의 중복 key는 나중 row가 이긴다.
        """
        events: List[ChangeEvent] = []
        # dict를 순서 있는 set으로 사용
        current_ids: Dict[Any, None] = {}

        for row in rows:
            key = row.get(self.primary_key)
            if key is None:
                raise MissingKeyError(self.primary_key, dict(row))
            if key in current_ids:
                logger.warning(f"같은 배치에 중복된 primary key: {self.primary_key}={key!r}")
            current_ids[key] = None

            record = normalize_row(row)
            current_hash = fingerprint(record)
            previous_hash = state.fingerprints.get(key)
            if key not in state.fingerprints:
                events.append(ChangeEvent(ChangeKind.INSERT, key, record))
            elif previous_hash != current_hash:
                events.append(ChangeEvent(ChangeKind.UPDATE, key, record))
            state.fingerprints[key] = current_hash

        if self.enable_delete:
            deleted_ids = [key for key in state.known_ids if key not in current_ids]
            for key in deleted_ids:
                state.fingerprints.pop(key, None)
                events.append(ChangeEvent(ChangeKind.DELETE, key, {self.primary_key: key}))

        state.known_ids = list(current_ids)
        return CycleResult(events=events, known_ids=state.known_ids)
