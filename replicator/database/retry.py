"""
재시도 정책 - 실패 시 폴링 주기만큼 쉬고 다시 시도
"""
import logging
from typing import Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..errors import PollCancelled, SourceConnectionError
from ..cancellation import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 재시도 대상: DB 오류, 소켓 오류
RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (SQLAlchemyError, OSError)


class RetryPolicy:
    def __init__(self, interval: float, max_attempts: Optional[int] = None):
        """
        interval: 재시도 간격(초) - 폴링 주기와 동일
        max_attempts: 최대 시도 횟수, None이면 무한 재시도
        """
        self.interval = interval
        self.max_attempts = max_attempts

    def run(self, operation: Callable[[], T], token: CancellationToken,
            on_failure: Optional[Callable[[], None]] = None) -> T:
        """operation이 성공하거나 취소될 때까지 반복"""
        attempt = 0
        while True:
            if token.cancelled:
                raise PollCancelled("재시도 전에 중지 요청됨")
            try:
                return operation()
            except RETRYABLE_ERRORS as e:
                attempt += 1
                logger.warning(f"DB 연결/쿼리 실패 (시도 {attempt}회): {e}")
                if on_failure:
                    on_failure()
                if self.max_attempts is not None and attempt >= self.max_attempts:
                    raise SourceConnectionError(f"{attempt}회 시도 후 실패: {e}") from e
                if token.sleep(self.interval):
                    raise PollCancelled("재시도 대기 중 중지 요청됨")
