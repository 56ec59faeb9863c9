"""
협조적 취소 토큰 - 모든 대기 지점에서 중지 신호 확인
"""
import threading


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """중지 신호 전송 - 대기 중인 sleep() 즉시 깨움"""
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    def sleep(self, seconds: float) -> bool:
        """
        seconds 동안 대기. 중지 신호를 받으면 바로 반환

        반환: 취소되었으면 True
        """
        return self._event.wait(seconds)
