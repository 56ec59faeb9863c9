"""
애플리케이션 설정 파일 - .env 파일 기반
"""
import os
import re
from dotenv import load_dotenv
from typing import Mapping, Optional

from sqlalchemy.engine import URL

from ..errors import ConfigurationError

# fluentd 시간 표기: 30, 30s, 1m, 2h, 1d, 0.5
_DURATION_PATTERN = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}

TAG_EXAMPLE = "replicator.mydatabase.mytable.${event}.${primary_key}"


def parse_duration(value: str) -> float:
    """시간 문자열을 초 단위로 변환"""
    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ConfigurationError(f"잘못된 시간 형식입니다: {value!r} (예: 30s, 1m, 1h)")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit]


def parse_bool(value: str) -> bool:
    """yes/no, true/false, 1/0 문자열을 bool로 변환"""
    normalized = str(value).strip().lower()
    if normalized in ("yes", "true", "1", "on"):
        return True
    if normalized in ("no", "false", "0", "off"):
        return False
    raise ConfigurationError(f"잘못된 bool 값입니다: {value!r}")


class Config:
    """애플리케이션 설정 클래스"""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        env = os.environ if env is None else env

        # === DB 설정 ===
        self.DB_DRIVER: str = env.get("DB_DRIVER", "postgresql+psycopg2")
        self.DB_HOST: str = env.get("DB_HOST", "localhost")
        port = env.get("DB_PORT")
        self.DB_PORT: Optional[int] = int(port) if port else None  # 없으면 드라이버 기본 포트
        self.DB_USERNAME: str = env.get("DB_USERNAME", "root")
        self.DB_PASSWORD: Optional[str] = env.get("DB_PASSWORD")
        self.DB_NAME: Optional[str] = env.get("DB_NAME")
        self.DB_ENCODING: str = env.get("DB_ENCODING", "utf8")

        # === 폴링 설정 ===
        self.POLL_INTERVAL: float = parse_duration(env.get("POLL_INTERVAL", "1m"))
        self.REPLICATOR_QUERY: Optional[str] = env.get("REPLICATOR_QUERY")  # 필수 환경변수
        self.PRIMARY_KEY: str = env.get("PRIMARY_KEY", "id")
        self.ENABLE_DELETE: bool = parse_bool(env.get("ENABLE_DELETE", "yes"))
        self.REPLICATOR_TAG: Optional[str] = env.get("REPLICATOR_TAG")  # 필수 환경변수, 기본값 없음
        max_attempts = env.get("RETRY_MAX_ATTEMPTS")
        self.RETRY_MAX_ATTEMPTS: Optional[int] = int(max_attempts) if max_attempts else None  # 없으면 무한 재시도

        # === Sink 설정 ===
        self.SINK_TYPE: str = env.get("SINK_TYPE", "log")
        self.MONGODB_URL: str = env.get("MONGODB_URL", "mongodb://localhost:27017")
        self.MONGODB_DB_NAME: str = env.get("MONGODB_DB_NAME", "replicator")
        self.MONGODB_COLLECTION: str = env.get("MONGODB_COLLECTION", "events")

        # === 애플리케이션 설정 ===
        self.APP_PORT: int = int(env.get("APP_PORT", "8000"))
        self.LOG_LEVEL: str = env.get("LOG_LEVEL", "INFO")

    def validate(self) -> None:
        """필수 설정 검증 - 폴링 시작 전에 호출"""
        if not self.REPLICATOR_TAG:
            raise ConfigurationError(
                "missing 'REPLICATOR_TAG' parameter. "
                f"Please add following line into config like 'REPLICATOR_TAG={TAG_EXAMPLE}'"
            )
        if not self.REPLICATOR_QUERY:
            raise ConfigurationError("missing 'REPLICATOR_QUERY' parameter.")
        if not self.PRIMARY_KEY:
            raise ConfigurationError("'PRIMARY_KEY' must not be empty.")
        if self.POLL_INTERVAL <= 0:
            raise ConfigurationError("'POLL_INTERVAL' must be positive.")
        if self.SINK_TYPE not in ("log", "mongodb"):
            raise ConfigurationError(f"지원하지 않는 SINK_TYPE입니다: {self.SINK_TYPE}")


_config_instance = None


def get_config() -> Config:
    """설정 싱글톤 반환 (.env 로드 + 검증)"""
    global _config_instance
    if _config_instance is None:
        load_dotenv()
        config = Config()
        config.validate()
        _config_instance = config
    return _config_instance


# 편의 함수들
def get_database_url(config: Config) -> URL:
    """SQLAlchemy 연결 URL 반환"""
    return URL.create(
        config.DB_DRIVER,
        username=config.DB_USERNAME,
        password=config.DB_PASSWORD,
        host=config.DB_HOST,
        port=config.DB_PORT,
        database=config.DB_NAME,
    )


def get_connect_args(config: Config) -> dict:
    """드라이버별 문자 인코딩 설정"""
    if config.DB_DRIVER.startswith("mysql"):
        return {"charset": config.DB_ENCODING}
    if config.DB_DRIVER.startswith("postgresql"):
        return {"client_encoding": config.DB_ENCODING}
    return {}


def get_mongodb_config(config: Config) -> dict:
    """MongoDB sink 설정 반환"""
    return {
        "url": config.MONGODB_URL,
        "database": config.MONGODB_DB_NAME,
        "collection": config.MONGODB_COLLECTION
    }
