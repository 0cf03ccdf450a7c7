"""日志模块

提供日志配置与管理：
- setup_logger / setup_root_logger / setup_sql_logger
- get_logger: 按模块名自动推断的日志记录器

使用示例:
    from yorder.log import setup_logger, get_logger

    # 打开排序引擎的调试日志
    setup_logger("yorder.orm.sortable", level="DEBUG")

    logger = get_logger()
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    setup_sql_logger,
    create_formatter,
    MicrosecondFormatter,
    LoggingConfigProtocol,
    DEFAULT_LOG_FORMAT,
    SQL_LOG_FORMAT,
    orm_logger,
    sortable_logger,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "setup_sql_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "LoggingConfigProtocol",
    "DEFAULT_LOG_FORMAT",
    "SQL_LOG_FORMAT",
    "orm_logger",
    "sortable_logger",
    "logger",
    "get_logger",
]
