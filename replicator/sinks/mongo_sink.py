"""
MongoDB sink - 변경 이벤트를 컬렉션에 저장
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping

from bson.decimal128 import Decimal128
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

from .base import Sink

logger = logging.getLogger(__name__)


def _to_document_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return Decimal128(value)
    return value


class MongoSink(Sink):
    def __init__(self, mongodb_uri: str, database_name: str, collection_name: str, client: MongoClient = None):
        """MongoDB sink 초기화"""
        self.mongodb_uri = mongodb_uri
        self.database_name = database_name
        self.collection_name = collection_name
        self.client = client
        self.collection = None
        self._connect()
        logger.info(f"MongoDB sink 초기화 완료: {database_name}.{collection_name}")

    def _connect(self) -> None:
        """MongoDB 연결 설정"""
        try:
            if self.client is None:
                self.client = MongoClient(self.mongodb_uri)
            # 연결 테스트
            self.client.admin.command('ping')
            self.collection = self.client[self.database_name][self.collection_name]
            self.collection.create_index("time")
            self.collection.create_index("tag")
        except ConnectionFailure as e:
            logger.error(f"MongoDB 연결 실패: {e}")
            raise

    def build_document(self, tag: str, timestamp: int, record: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "tag": tag,
            "time": timestamp,
            "record": {key: _to_document_value(value) for key, value in record.items()},
            "created_at": datetime.now()
        }

    def emit(self, tag: str, timestamp: int, record: Mapping[str, Any]) -> None:
        try:
            self.collection.insert_one(self.build_document(tag, timestamp, record))
        except PyMongoError as e:
            # 전달 보장 없음 - 실패는 기록만 하고 폴링은 계속
            logger.error(f"MongoDB 이벤트 저장 실패 - tag: {tag}, error: {e}")

    def close(self) -> None:
        """MongoDB 연결 종료"""
        if self.client:
            self.client.close()
            logger.info("MongoDB 연결 종료 완료")
