"""
yorder - 基于 SQLAlchemy 的分组稠密排序

在每个分组内维护从 0 开始、连续无空洞的 sort_order，
覆盖创建、调序、换组、删除（软删除/物理删除）、恢复等生命周期事件。
"""

from .version import __version__, __author__, __description__

# 导出配置
from .config import (
    AppSettings,
    SortableSettings,
    DatabaseSettings,
    LoggingSettings,
    ConfigLoader,
    load_yaml_config,
)

# 导出异常
from .exceptions import (
    Err,
    ErrorCode,
    BusinessException,
    ResourceNotFoundException,
    ValidationException,
    FieldValidationError,
)

# 导出日志
from .log import (
    setup_logger,
    setup_root_logger,
    get_logger,
)

# 导出排序引擎与 ORM
from .orm import (
    CoreModel,
    SoftDeleteMixin,
    SortFieldMixin,
    SortableMixin,
    OrderingEngine,
    SqlAlchemySortStore,
    SortConfig,
    RecordSnapshot,
    init_database,
    db_session_scope,
)

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "AppSettings",
    "SortableSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_yaml_config",
    "Err",
    "ErrorCode",
    "BusinessException",
    "ResourceNotFoundException",
    "ValidationException",
    "FieldValidationError",
    "setup_logger",
    "setup_root_logger",
    "get_logger",
    "CoreModel",
    "SoftDeleteMixin",
    "SortFieldMixin",
    "SortableMixin",
    "OrderingEngine",
    "SqlAlchemySortStore",
    "SortConfig",
    "RecordSnapshot",
    "init_database",
    "db_session_scope",
]
