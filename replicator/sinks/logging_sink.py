"""
로그 sink - 이벤트를 JSON 한 줄로 로그에 기록
"""
import json
import logging
from typing import Any, Mapping

from .base import Sink


class LoggingSink(Sink):
    def __init__(self, logger_name: str = "replicator.events"):
        self.logger = logging.getLogger(logger_name)

    def emit(self, tag: str, timestamp: int, record: Mapping[str, Any]) -> None:
        # Decimal 등 JSON 미지원 타입은 문자열로
        self.logger.info(json.dumps({"tag": tag, "time": timestamp, "record": dict(record)},
                                    default=str, ensure_ascii=False))
