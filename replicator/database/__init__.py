"""
Database 모듈 - 설정, 재시도 정책, row source
"""
from .config import Config, get_config, get_database_url, get_connect_args, get_mongodb_config
from .retry import RetryPolicy
from .row_source import RowSource, create_row_source

# Public API
__all__ = [
    # Config
    "Config",
    "get_config",
    "get_database_url",
    "get_connect_args",
    "get_mongodb_config",

    # Source
    "RetryPolicy",
    "RowSource",
    "create_row_source"
]
