"""
Tag 템플릿 - ${event}, ${primary_key} 치환
"""
import logging
import re
import warnings
from typing import Any, Mapping

from ..errors import UnknownPlaceholderWarning
from .events import ChangeKind

logger = logging.getLogger(__name__)

# ${name} 또는 ${name[0]} (인덱스는 문법상 허용만 하고 치환에는 쓰지 않음)
PLACEHOLDER_PATTERN = re.compile(r"\$\{([a-z_]+)(\[[0-9]+\])?\}")


def expand_tag(template: str, params: Mapping[str, Any]) -> str:
    """템플릿의 placeholder를 params 값으로 치환"""
    def _replace(match) -> str:
        name = match.group(1)
        if name not in params:
            message = f"missing placeholder. tag:{template} placeholder:{name}"
            # 로그는 매번, warnings는 호출 측에서 분류/필터링용
            logger.warning(message)
            warnings.warn(message, UnknownPlaceholderWarning, stacklevel=2)
            return ""
        return str(params[name])

    return PLACEHOLDER_PATTERN.sub(_replace, template)


class TagTemplate:
    def __init__(self, template: str, primary_key: str):
        self.template = template
        self.primary_key = primary_key

    def render(self, kind: ChangeKind) -> str:
        """이벤트 종류별 tag 생성"""
        return expand_tag(self.template, {"event": kind.value, "primary_key": self.primary_key})
