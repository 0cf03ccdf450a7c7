"""排序管理模块

在每个分组内维护从 0 开始、连续无空洞的 sort_order。

导出:
    - OrderingEngine: 排序引擎（显式入口，不依赖 ORM 事件）
    - SortStore / SqlAlchemySortStore: 排序存储契约及 SQLAlchemy 实现
    - SortConfig / RecordSnapshot / Bound: 数据类型
    - SortFieldMixin: 排序字段 Mixin（提供 sort_order 字段）
    - SortableMixin: 排序管理 Mixin（映射器事件 + 排序操作方法）

使用示例:
    from yorder.orm import CoreModel, SoftDeleteMixin
    from yorder.orm.sortable import SortFieldMixin, SortableMixin

    class Menu(CoreModel, SoftDeleteMixin, SortFieldMixin, SortableMixin):
        parent_id = mapped_column(Integer, nullable=True)
        title = mapped_column(String(100))

    menu = Menu.get(1)
    menu.move_up()            # 上移
    menu.move_down()          # 下移
    menu.move_to_top()        # 置顶
    menu.move_to_bottom()     # 置底
    menu.move_to(3)           # 移动到序号 3
    session.commit()

    Menu.check_sort_order(parent_id)   # 序号是否为 0..n-1
"""

from .types import (
    SortConfig,
    RecordSnapshot,
    Bound,
    BOUND_OPERATORS,
    group_changed,
    sort_changed,
    tombstoned,
    restored,
)
from .store import SortStore, SqlAlchemySortStore
from .validation import coerce_sort_index
from .engine import OrderingEngine
from .sortable_fields import SortFieldMixin
from .sortable_mixin import SortableMixin

__all__ = [
    "SortConfig",
    "RecordSnapshot",
    "Bound",
    "BOUND_OPERATORS",
    "group_changed",
    "sort_changed",
    "tombstoned",
    "restored",
    "SortStore",
    "SqlAlchemySortStore",
    "coerce_sort_index",
    "OrderingEngine",
    "SortFieldMixin",
    "SortableMixin",
]
