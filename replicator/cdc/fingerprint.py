"""
Row fingerprint - 변경 감지용 row 다이제스트
"""
import hashlib
from datetime import date, datetime, time
from typing import Any, Dict, Mapping

# 컬럼명/값 구분자 ("ab","c" 와 "a","bc" 가 같은 해시가 되지 않도록)
_SEPARATOR = "\x1f"
# NULL 전용 토큰 - 값 토큰은 항상 _VALUE_PREFIX로 시작하므로 겹치지 않음
_NULL_TOKEN = "\x00"
_VALUE_PREFIX = "\x01"


def normalize_value(value: Any) -> Any:
    """시간 타입 값을 표준 문자열로 변환 (그 외 값은 그대로)"""
    # datetime은 date의 서브클래스라서 먼저 확인
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


def normalize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """emit / 해시용 row 사본 생성"""
    return {column: normalize_value(value) for column, value in row.items()}


def _to_token(value: Any) -> str:
    value = normalize_value(value)
    if value is None:
        return _NULL_TOKEN
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _VALUE_PREFIX + bytes(value).hex()
    return _VALUE_PREFIX + str(value)


def fingerprint(row: Mapping[str, Any], sort_columns: bool = False) -> bytes:
    """
    row 값으로 SHA-1 다이제스트(20바이트) 계산

    컬럼 순서대로 해시하므로 같은 쿼리라면 매 폴링마다 순서가 같아야 한다.
    드라이버가 컬럼 순서를 보장하지 않으면 sort_columns=True 사용.
    """
    items = sorted(row.items()) if sort_columns else row.items()
    digest = hashlib.sha1()
    for column, value in items:
        digest.update(str(column).encode("utf-8"))
        digest.update(_SEPARATOR.encode("utf-8"))
        digest.update(_to_token(value).encode("utf-8"))
        digest.update(_SEPARATOR.encode("utf-8"))
    return digest.digest()
