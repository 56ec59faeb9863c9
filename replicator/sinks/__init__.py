"""
Sink 모듈 - 변경 이벤트 출력 대상
"""
from .base import Sink
from .logging_sink import LoggingSink
from ..database.config import Config, get_mongodb_config


def create_sink(config: Config) -> Sink:
    """SINK_TYPE 설정에 맞는 sink 생성"""
    if config.SINK_TYPE == "mongodb":
        # pymongo 연결은 mongodb sink를 쓸 때만
        from .mongo_sink import MongoSink

        mongodb_config = get_mongodb_config(config)
        return MongoSink(mongodb_config["url"], mongodb_config["database"], mongodb_config["collection"])
    return LoggingSink()


# Public API
__all__ = [
    "Sink",
    "LoggingSink",
    "create_sink"
]
