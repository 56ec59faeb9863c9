"""
변경 이벤트 타입
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class ChangeKind(Enum):
    """이벤트 종류 - tag의 ${event} 값으로도 사용"""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class ChangeEvent:
    """
    감지된 변경 1건
    """
    kind: ChangeKind
    key: Any                    # primary key 값
    record: Dict[str, Any] = field(default_factory=dict)  # delete는 {primary_key: key}
