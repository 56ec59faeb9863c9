"""
Row source - 쿼리 실행 및 결과 스트리밍 (SQLAlchemy)
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..cancellation import CancellationToken
from ..errors import SourceConnectionError
from .config import Config, get_connect_args, get_database_url
from .retry import RETRYABLE_ERRORS, RetryPolicy

logger = logging.getLogger(__name__)


class RowSource:
    def __init__(self, url: Union[str, URL], retry_policy: RetryPolicy, token: CancellationToken,
                 connect_args: Optional[dict] = None):
        """Row source 초기화 - 연결은 첫 조회 시점에 생성"""
        self.url = url
        self.retry_policy = retry_policy
        self.token = token
        self.connect_args = connect_args or {}
        self.engine: Optional[Engine] = None
        self.connection: Optional[Connection] = None

    def _get_engine(self) -> Engine:
        if self.engine is None:
            self.engine = create_engine(
                self.url,
                connect_args=self.connect_args,
                pool_pre_ping=True,  # 끊어진 연결 자동 감지
            )
        return self.engine

    def _get_connection(self) -> Connection:
        """연결 가져오기 (정상이면 재사용, 없거나 닫혔으면 새로 연결)"""
        if self.connection is None or self.connection.closed:
            self.connection = self._get_engine().connect()
            logger.info("DB 연결 완료")
        return self.connection

    def _reset_connection(self) -> None:
        """실패한 연결 정리 - 다음 시도에서 다시 연결"""
        if self.connection is None:
            return
        try:
            self.connection.invalidate()
            self.connection.close()
        except SQLAlchemyError as e:
            logger.debug(f"실패한 연결 정리 중 오류 무시: {e}")
        self.connection = None

    def _execute(self, query: str):
        conn = self._get_connection()
        # 서버 사이드 커서 사용 - 전체 결과를 메모리에 올리지 않음
        return conn.execution_options(stream_results=True).execute(text(query))

    def fetch(self, query: str) -> Iterator[Dict[str, Any]]:
        """
        쿼리 실행 후 row를 하나씩 반환

        연결/실행 실패는 retry_policy에 따라 성공할 때까지 재시도한다.
        row를 내보내기 시작한 뒤의 실패는 SourceConnectionError로 전달.
        """
        result = self.retry_policy.run(
            lambda: self._execute(query),
            self.token,
            on_failure=self._reset_connection,
        )
        try:
            for row in result.mappings():
                yield dict(row)
        except RETRYABLE_ERRORS as e:
            self._reset_connection()
            raise SourceConnectionError(f"결과 스트리밍 중 연결 실패: {e}") from e
        finally:
            result.close()
            if self.connection is not None and not self.connection.closed:
                # 다음 폴링이 새 스냅샷을 보도록 트랜잭션 종료
                self.connection.rollback()

    def health_check(self) -> dict:
        """데이터베이스 연결 상태 확인 (재시도 없음)"""
        try:
            with self._get_engine().connect() as conn:
                row = conn.execute(text("SELECT 1")).fetchone()
            is_connected = row is not None and row[0] == 1
            return {
                "is_connected": is_connected,
                "checked_at": datetime.now().isoformat()
            }
        except RETRYABLE_ERRORS as e:
            logger.error(f"DB 헬스체크 실패: {e}")
            return {
                "is_connected": False,
                "error": str(e),
                "checked_at": datetime.now().isoformat()
            }

    def close(self) -> None:
        """DB 연결 종료"""
        if self.connection is not None:
            self.connection.close()
            self.connection = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
        logger.info("DB 연결 종료 완료")


def create_row_source(config: Config, token: CancellationToken) -> RowSource:
    """설정 기반 Row source 생성"""
    return RowSource(
        url=get_database_url(config),
        retry_policy=RetryPolicy(config.POLL_INTERVAL, config.RETRY_MAX_ATTEMPTS),
        token=token,
        connect_args=get_connect_args(config),
    )
