"""
Polling 모듈 - 주기적 조회 및 변경 이벤트 전달
"""
from .scheduler import ReplicatorPollingScheduler, PollerState

# Public API
__all__ = [
    "ReplicatorPollingScheduler",
    "PollerState"
]
