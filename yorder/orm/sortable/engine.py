"""排序引擎

在记录的生命周期事件上维护分组内 0..n-1 的连续序号。

调用方在自己的事务里、在持久化前后的固定时机显式调用入口方法，
并传入变更前（prior）和变更后（new）的快照：

    ┌───────────────┬──────────────────┬──────────────────────────────┐
    │ 时机          │ 入口             │ 对存储的操作                 │
    ├───────────────┼──────────────────┼──────────────────────────────┤
    │ 插入前        │ before_create    │ 读 max                       │
    │ 插入后        │ after_create     │ 读 max，写自身               │
    │ 更新前        │ before_update    │ 校验，清空自身，区间平移     │
    │ 更新后        │ after_update     │ 读新分组 max，写自身         │
    │ 删除前        │ before_delete    │ 清空自身，压缩分组           │
    │ 恢复后        │ after_restore    │ 读 max，追加到末尾           │
    └───────────────┴──────────────────┴──────────────────────────────┘

使用示例:
    store = SqlAlchemySortStore(session, Banner.__table__, config)
    engine = OrderingEngine(store)

    with store.atomic():
        prior = store.get_snapshot(banner_id)
        new = dataclasses.replace(prior, sort_order=2)
        engine.before_update(prior, new)
        store.set_sort_order(banner_id, new.sort_order)   # 调用方自己的持久化
        engine.after_update(prior, new)
"""

from typing import Any, Optional

from yorder.exceptions import FieldValidationError
from yorder.log import get_logger

from .store import SortStore
from .types import (
    Bound,
    RecordSnapshot,
    SortConfig,
    group_changed,
    restored,
    sort_changed,
    tombstoned,
)
from .validation import coerce_sort_index


logger = get_logger("yorder.orm.sortable")


class OrderingEngine:
    """分组连续序号维护引擎

    Args:
        store: 排序存储
        config: 排序配置，默认使用 store.config
    """

    def __init__(self, store: SortStore, config: SortConfig = None):
        self.store = store
        self.config = config or store.config

    # ==================== 内部工具 ====================

    def _next_position(self, group_key: Any, exclude_id: Any = None) -> int:
        current_max = self.store.max_sort_order(group_key, exclude_id=exclude_id)
        return 0 if current_max is None else current_max + 1

    def _lock(self, *group_keys: Any) -> None:
        if not self.config.lock_groups:
            return
        for group_key in dict.fromkeys(group_keys):
            self.store.lock_group(group_key)

    def _leave_group(self, prior: RecordSnapshot) -> None:
        """让记录离开原分组：清空自身序号并压缩后面的记录"""
        if prior.sort_order is None:
            logger.debug(f"记录 {prior.id} 原序号为空，跳过分组压缩")
            return

        self.store.clear_sort_order(prior.id)
        affected = self.store.shift(
            prior.group_key, -1, lower=Bound(">", prior.sort_order)
        )
        logger.debug(
            f"记录 {prior.id} 离开分组 {prior.group_key!r}（原序号 {prior.sort_order}），"
            f"{affected} 条记录前移"
        )

    def _reorder(self, prior: RecordSnapshot, target: int) -> None:
        old = prior.sort_order
        # 先腾出自身的位置，避免被区间平移重复命中
        self.store.clear_sort_order(prior.id)

        if target > old:
            affected = self.store.shift(
                prior.group_key, -1, lower=Bound(">", old), upper=Bound("<=", target)
            )
        else:
            affected = self.store.shift(
                prior.group_key, 1, lower=Bound(">=", target), upper=Bound("<", old)
            )
        logger.debug(
            f"记录 {prior.id} 在分组 {prior.group_key!r} 内从 {old} 移动到 {target}，"
            f"{affected} 条记录平移"
        )

    # ==================== 生命周期入口 ====================

    def before_create(self, record: RecordSnapshot) -> Optional[int]:
        """插入前：计算新记录的序号（分组末尾）

        创建时即处于删除状态的记录不占位置，返回 None。
        """
        if record.deleted:
            return None

        self._lock(record.group_key)
        position = self._next_position(record.group_key)
        logger.debug(f"新记录加入分组 {record.group_key!r}，序号 {position}")
        return position

    def after_create(self, record: RecordSnapshot) -> Optional[int]:
        """插入后：为已写入（序号为空）的新记录分配分组末尾的序号

        与 before_create 等价，但在行写入之后执行，能看到同一事务里
        之前发生的压缩。删除状态的记录不占位置，返回 None。
        """
        if record.deleted:
            return None

        self._lock(record.group_key)
        position = self._next_position(record.group_key, exclude_id=record.id)
        self.store.set_sort_order(record.id, position)
        logger.debug(f"新记录 {record.id} 加入分组 {record.group_key!r}，序号 {position}")
        return position

    def before_update(self, prior: RecordSnapshot, new: RecordSnapshot) -> None:
        """更新前：处理软删除、分组变更和显式调序

        - 软删除（prior 有效，new 已删除）等同 before_delete
        - 分组变更优先：离开原分组，new 中请求的序号被忽略，
          记录在 after_update 中追加到新分组末尾
        - 显式调序：校验目标序号，清空自身后对区间整体平移，
          目标序号由调用方随后的持久化写入

        Raises:
            FieldValidationError: 目标序号非法，此时未修改任何数据
        """
        if tombstoned(prior, new):
            self.before_delete(prior)
            return

        if not prior.is_active:
            return

        if group_changed(prior, new):
            if sort_changed(prior, new):
                logger.warning(
                    f"记录 {prior.id} 同时变更了分组和序号，忽略请求的序号 {new.sort_order}，"
                    f"记录将追加到分组 {new.group_key!r} 末尾"
                )
            self._lock(prior.group_key, new.group_key)
            self._leave_group(prior)
            return

        if prior.sort_order is None:
            if new.sort_order is not None:
                logger.debug(f"记录 {prior.id} 原序号为空，跳过调序")
            return

        if sort_changed(prior, new):
            self.validate_sort_index(new.sort_order, prior)
            self._lock(prior.group_key)
            self._reorder(prior, new.sort_order)

    def after_update(self, prior: RecordSnapshot, new: RecordSnapshot) -> Optional[int]:
        """更新后：分组变更时追加到新分组末尾，恢复软删除时重新入列

        Returns:
            写入的新序号，未写入时返回 None
        """
        if restored(prior, new):
            return self.after_restore(new)

        if new.deleted or not group_changed(prior, new):
            return None

        position = self._next_position(new.group_key, exclude_id=new.id)
        self.store.set_sort_order(new.id, position)
        logger.debug(f"记录 {new.id} 追加到分组 {new.group_key!r}，序号 {position}")
        return position

    def before_delete(self, record: RecordSnapshot) -> None:
        """删除前：清空自身序号（仅软删除）并压缩分组

        物理删除时行本身随后被删掉，无需清空。
        已处于删除状态（序号为空）的记录不做处理。
        """
        if record.sort_order is None:
            logger.debug(f"记录 {record.id} 序号为空，删除时跳过压缩")
            return

        self._lock(record.group_key)
        if self.config.soft_delete:
            self.store.clear_sort_order(record.id)

        affected = self.store.shift(
            record.group_key, -1, lower=Bound(">", record.sort_order)
        )
        logger.debug(
            f"删除记录 {record.id}（分组 {record.group_key!r}，序号 {record.sort_order}），"
            f"{affected} 条记录前移"
        )

    def after_restore(self, record: RecordSnapshot) -> int:
        """恢复后：追加到当前分组末尾，不回到原位置

        Raises:
            RuntimeError: 记录类型不支持软删除
        """
        if not self.config.soft_delete:
            raise RuntimeError("记录类型不支持软删除，无法恢复")

        self._lock(record.group_key)
        position = self._next_position(record.group_key, exclude_id=record.id)
        self.store.set_sort_order(record.id, position)
        logger.debug(f"记录 {record.id} 恢复到分组 {record.group_key!r}，序号 {position}")
        return position

    # ==================== 校验 ====================

    def can_update_sort(self, record: RecordSnapshot, requested: Any) -> bool:
        """目标序号是否可用

        以下情况不可用：
        - 不是非负整数
        - 与当前序号相同
        - 超过分组内最大序号（分组为空时最大序号按 0 计）
        """
        index = coerce_sort_index(requested)
        if index is None:
            return False
        if index == record.sort_order:
            return False
        current_max = self.store.max_sort_order(record.group_key)
        return index <= (current_max or 0)

    def validate_sort_index(self, requested: Any, record: RecordSnapshot) -> None:
        """校验目标序号，非法时抛出 FieldValidationError"""
        if self.can_update_sort(record, requested):
            return

        field = self.config.sort_field
        logger.info(
            f"拒绝记录 {record.id} 的调序请求：{field}={requested!r}"
            f"（当前 {record.sort_order}，分组 {record.group_key!r}）"
        )
        raise FieldValidationError(
            field,
            f"{field} 无效：{requested!r}",
            value=requested,
            record_id=record.id,
        )

    def verify_group(self, group_key: Any) -> bool:
        """检查分组内有效记录的序号是否恰好为 0..n-1"""
        orders = self.store.sort_orders(group_key)
        return orders == list(range(len(orders)))


__all__ = [
    "OrderingEngine",
]
