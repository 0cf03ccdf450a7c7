"""排序存储

排序引擎对存储只做以下几类操作：
- 按主键点读（读取变更前的快照）
- 按分组聚合 max(sort_order)
- 按主键点写 sort_order
- 按分组 + 比较条件批量加减 sort_order

SortStore 定义这组契约，SqlAlchemySortStore 用 SQLAlchemy Core 语句在
Session 或 Connection 上实现。引擎从不把整个分组加载到内存中重写。
"""

import operator
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Union

from sqlalchemy import Table, func, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session

from .types import Bound, RecordSnapshot, SortConfig


_OPERATORS = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


class SortStore(ABC):
    """排序存储契约"""

    config: SortConfig

    @abstractmethod
    def get_snapshot(self, record_id: Any) -> Optional[RecordSnapshot]:
        """按主键读取记录当前持久化的快照，不存在返回 None"""

    @abstractmethod
    def max_sort_order(self, group_key: Any, exclude_id: Any = None) -> Optional[int]:
        """分组内未删除记录的最大排序号，分组为空返回 None"""

    @abstractmethod
    def set_sort_order(self, record_id: Any, value: Optional[int]) -> None:
        """按主键设置排序号"""

    @abstractmethod
    def shift(
        self,
        group_key: Any,
        delta: int,
        lower: Optional[Bound] = None,
        upper: Optional[Bound] = None,
    ) -> int:
        """对分组内落在边界内的未删除记录整体加减 delta

        Returns:
            受影响的行数
        """

    @abstractmethod
    def sort_orders(self, group_key: Any) -> List[int]:
        """分组内未删除记录的排序号（升序）"""

    @abstractmethod
    def lock_group(self, group_key: Any) -> None:
        """锁定分组内的行，直到当前事务结束"""

    @abstractmethod
    def atomic(self):
        """包裹一次生命周期事件的事务上下文"""

    def clear_sort_order(self, record_id: Any) -> None:
        """清空排序号，让记录暂时不占用任何位置"""
        self.set_sort_order(record_id, None)


class SqlAlchemySortStore(SortStore):
    """基于 SQLAlchemy Core 的排序存储

    Args:
        bind: Session 或 Connection，所有语句都在它上面执行
        table: 记录所在的表
        config: 排序配置（字段名、软删除能力）

    使用示例:
        store = SqlAlchemySortStore(session, Banner.__table__, SortConfig(group_field="category_id"))
        engine = OrderingEngine(store)

        with store.atomic():
            engine.before_delete(snapshot)
            ...
    """

    def __init__(self, bind: Union[Session, Connection], table: Table, config: SortConfig = None):
        self.bind = bind
        self.table = table
        self.config = config or SortConfig()
        self._check_columns()

    def _check_columns(self) -> None:
        required = [self.config.id_field, self.config.group_field, self.config.sort_field]
        if self.config.soft_delete:
            required.append(self.config.deleted_field)
        missing = [name for name in required if name not in self.table.c]
        if missing:
            raise ValueError(f"表 {self.table.name} 缺少排序所需的列：{', '.join(missing)}")

    # ==================== 列与条件 ====================

    @property
    def id_column(self):
        return self.table.c[self.config.id_field]

    @property
    def group_column(self):
        return self.table.c[self.config.group_field]

    @property
    def sort_column(self):
        return self.table.c[self.config.sort_field]

    @property
    def deleted_column(self):
        return self.table.c[self.config.deleted_field]

    def _group_clause(self, group_key: Any):
        # NULL 分组单独成组，不能用 = 比较
        if group_key is None:
            return self.group_column.is_(None)
        return self.group_column == group_key

    def _active_clauses(self) -> list:
        clauses = [self.sort_column.isnot(None)]
        if self.config.soft_delete:
            clauses.append(self.deleted_column.is_(None))
        return clauses

    # ==================== 读取 ====================

    def get_snapshot(self, record_id: Any) -> Optional[RecordSnapshot]:
        columns = [self.group_column, self.sort_column]
        if self.config.soft_delete:
            columns.append(self.deleted_column)

        row = self.bind.execute(
            select(*columns).where(self.id_column == record_id)
        ).first()
        if row is None:
            return None

        deleted = self.config.soft_delete and row[2] is not None
        return RecordSnapshot(
            id=record_id,
            group_key=row[0],
            sort_order=row[1],
            deleted=deleted,
        )

    def max_sort_order(self, group_key: Any, exclude_id: Any = None) -> Optional[int]:
        stmt = select(func.max(self.sort_column)).where(
            self._group_clause(group_key),
            *self._active_clauses(),
        )
        if exclude_id is not None:
            stmt = stmt.where(self.id_column != exclude_id)
        return self.bind.execute(stmt).scalar()

    def sort_orders(self, group_key: Any) -> List[int]:
        stmt = (
            select(self.sort_column)
            .where(self._group_clause(group_key), *self._active_clauses())
            .order_by(self.sort_column)
        )
        return list(self.bind.execute(stmt).scalars().all())

    # ==================== 写入 ====================

    def set_sort_order(self, record_id: Any, value: Optional[int]) -> None:
        self.bind.execute(
            update(self.table)
            .where(self.id_column == record_id)
            .values({self.sort_column: value})
        )

    def shift(
        self,
        group_key: Any,
        delta: int,
        lower: Optional[Bound] = None,
        upper: Optional[Bound] = None,
    ) -> int:
        stmt = update(self.table).where(
            self._group_clause(group_key),
            *self._active_clauses(),
        )
        for bound in (lower, upper):
            if bound is not None:
                stmt = stmt.where(_OPERATORS[bound.op](self.sort_column, bound.value))

        result = self.bind.execute(stmt.values({self.sort_column: self.sort_column + delta}))
        return result.rowcount

    def lock_group(self, group_key: Any) -> None:
        # 不支持行锁的方言（如 SQLite）会忽略 FOR UPDATE
        self.bind.execute(
            select(self.id_column)
            .where(self._group_clause(group_key))
            .with_for_update()
        ).all()

    # ==================== 事务 ====================

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """事务上下文

        已处于事务中时直接加入外层事务，由外层边界负责提交或回滚；
        否则开启新事务，正常退出提交，异常回滚。
        """
        if self.bind.in_transaction():
            yield
            return
        with self.bind.begin():
            yield


__all__ = [
    "SortStore",
    "SqlAlchemySortStore",
]
