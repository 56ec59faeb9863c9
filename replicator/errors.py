"""
예외 / 경고 정의
"""


class ReplicatorError(Exception):
    """replicator 공통 예외"""


class ConfigurationError(ReplicatorError):
    """필수 설정 누락 - 폴링 시작 전에 발생"""


class SourceConnectionError(ReplicatorError, ConnectionError):
    """DB 연결/쿼리 실패 (재시도 한도 초과 또는 스트리밍 도중 실패)"""


class MissingKeyError(ReplicatorError, LookupError):
    """조회된 row에 primary key 컬럼이 없음"""

    def __init__(self, primary_key: str, row: dict):
        self.primary_key = primary_key
        self.columns = list(row.keys())
        super().__init__(f"row에 primary key '{primary_key}' 값이 없습니다. columns={self.columns}")


class PollCancelled(ReplicatorError):
    """폴링 중지 요청으로 대기/재시도가 중단됨"""


class UnknownPlaceholderWarning(UserWarning):
    """tag 템플릿에 알 수 없는 placeholder가 있음"""
