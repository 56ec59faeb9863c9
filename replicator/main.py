"""
  FastAPI 메인 애플리케이션 - 쿼리 폴링 CDC replicator
  - 백그라운드: 설정된 주기로 쿼리를 실행하고 insert/update/delete 이벤트 전달
  - API: 헬스체크, 폴링 상태 조회, 폴러 재시작
"""
from fastapi import FastAPI, HTTPException
from contextlib import asynccontextmanager
import logging
from datetime import datetime

from .cancellation import CancellationToken
from .cdc.detector import ChangeDetector
from .cdc.tag_template import TagTemplate
from .database.config import Config, get_config
from .database.row_source import create_row_source
from .polling.scheduler import ReplicatorPollingScheduler
from .sinks import create_sink

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

polling_scheduler = None


def build_scheduler(config: Config) -> ReplicatorPollingScheduler:
    """설정으로 폴링 스케줄러 구성 (row source, 감지기, tag, sink)"""
    config.validate()
    token = CancellationToken()
    return ReplicatorPollingScheduler(
        row_source=create_row_source(config, token),
        detector=ChangeDetector(config.PRIMARY_KEY, enable_delete=config.ENABLE_DELETE),
        tag=TagTemplate(config.REPLICATOR_TAG, config.PRIMARY_KEY),
        sink=create_sink(config),
        query=config.REPLICATOR_QUERY,
        poll_interval=config.POLL_INTERVAL,
        token=token,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 생명주기 관리
    """
    global polling_scheduler

    try:
        logger.info("애플리케이션 시작 - 리소스 초기화")
        config = get_config()
        logging.getLogger().setLevel(config.LOG_LEVEL.upper())

        polling_scheduler = build_scheduler(config)
        polling_scheduler.start()
        logger.info("애플리케이션 시작 완료")
    except Exception as e:
        logger.error(f"❌ 서버 초기화 실패: {e}")
        raise
    yield

    try:
        if polling_scheduler:
            polling_scheduler.stop()
            polling_scheduler.sink.close()
        logger.info("✅ FastAPI 서버 종료")
    except Exception as e:
        logger.error(f"❌ 서버 종료 중 오류: {e}")


app = FastAPI(
    title="Replicator API",
    description="""
    **쿼리 폴링 기반 변경 데이터 캡처(CDC)**

    - 🔄 주기적으로 쿼리를 실행하고 row fingerprint를 비교
    - 📤 insert / update / delete 이벤트를 tag와 함께 sink로 전달
    """,
    version="1.0.0",
    lifespan=lifespan
)


@app.get("/", tags=["시스템"])
async def root():
    """루트 엔드포인트"""
    return {
        "service": "Replicator API",
        "status": "running",
        "timestamp": datetime.now().isoformat()
    }


@app.get("/health", tags=["monitoring"])
def health_check():
    """
    헬스체크 엔드포인트
    - DB 연결 상태
    - 폴링 스케줄러 상태
    """
    if not polling_scheduler:
        raise HTTPException(status_code=503, detail="폴링 스케줄러가 초기화되지 않았습니다.")
    database_status = polling_scheduler.row_source.health_check()
    polling_status = polling_scheduler.get_status()

    overall_healthy = database_status.get("is_connected", False) and polling_status.get("is_running", False)
    return {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": datetime.now().isoformat(),
        "services": {
            "database": database_status,
            "polling_scheduler": polling_status
        }
    }


@app.get("/status", tags=["polling"])
async def get_polling_status():
    """폴링 스케줄러 상태 조회"""
    if not polling_scheduler:
        raise HTTPException(status_code=503, detail="폴링 스케줄러가 초기화되지 않았습니다.")
    return polling_scheduler.get_status()


@app.post("/poller/restart", tags=["polling"])
async def restart_poller():
    """
    폴러 재시작 (수동)
    - 오류로 멈춘 폴러를 빈 상태에서 다시 시작. 현재 row는 모두 insert로 다시 전달됨
    """
    if not polling_scheduler:
        raise HTTPException(status_code=503, detail="폴링 스케줄러가 초기화되지 않았습니다.")
    if polling_scheduler.is_running:
        raise HTTPException(status_code=409, detail="폴링 스케줄러가 이미 실행중입니다.")
    logger.info("수동 폴러 재시작")
    polling_scheduler.reset()
    polling_scheduler.start()
    return polling_scheduler.get_status()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_config().APP_PORT)
