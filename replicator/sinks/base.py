from abc import ABC, abstractmethod
from typing import Any, Mapping


class Sink(ABC):
    @abstractmethod
    def emit(self, tag: str, timestamp: int, record: Mapping[str, Any]) -> None:
        """
        이벤트 1건 전달 (fire-and-forget, 응답 없음)
        """
        pass

    def close(self) -> None:
        """
        sink 리소스 정리
        """
        pass
