"""
CDC 모듈 - fingerprint, tag 템플릿, 변경 감지
"""
from .events import ChangeEvent, ChangeKind
from .fingerprint import fingerprint, normalize_row
from .tag_template import TagTemplate, expand_tag
from .detector import ChangeDetector, CycleResult, DetectorState

# Public API
__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "fingerprint",
    "normalize_row",
    "TagTemplate",
    "expand_tag",
    "ChangeDetector",
    "CycleResult",
    "DetectorState"
]
