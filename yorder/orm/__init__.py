"""ORM模块

- CoreModel: 核心模型基类，包含ID、时间戳、CRUD
- SoftDeleteMixin: 软删除能力
- SortFieldMixin / SortableMixin: 分组连续序号
- OrderingEngine: 不依赖 ORM 事件的排序引擎
- 数据库会话管理

使用示例:
    from yorder.orm import CoreModel, SoftDeleteMixin, SortFieldMixin, SortableMixin, init_database

    init_database("sqlite:///./app.db")

    class Menu(CoreModel, SoftDeleteMixin, SortFieldMixin, SortableMixin):
        parent_id = mapped_column(Integer, nullable=True)
        title = mapped_column(String(100))
"""

from .id_model import IdModel, Base
from .core_model import CoreModel
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
    on_session_end,
)
from .orm_extensions import (
    SoftDeleteMixin,
    generate_soft_delete_mixin_class,
    supports_soft_delete,
)
from .sortable import (
    OrderingEngine,
    SortStore,
    SqlAlchemySortStore,
    SortConfig,
    RecordSnapshot,
    Bound,
    SortFieldMixin,
    SortableMixin,
)

__all__ = [
    "IdModel",
    "Base",
    "CoreModel",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
    "on_session_end",
    "SoftDeleteMixin",
    "generate_soft_delete_mixin_class",
    "supports_soft_delete",
    "OrderingEngine",
    "SortStore",
    "SqlAlchemySortStore",
    "SortConfig",
    "RecordSnapshot",
    "Bound",
    "SortFieldMixin",
    "SortableMixin",
]
