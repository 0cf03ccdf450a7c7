"""排序引擎的数据类型

- SortConfig: 记录类型的排序配置（分组字段、排序字段、软删除能力等）
- RecordSnapshot: 某一时刻记录上与排序相关的字段值
- Bound: 区间平移的边界条件
"""

from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from yorder.config import SortableSettings


# 区间平移允许使用的比较符
BOUND_OPERATORS = (">", ">=", "<", "<=")


@dataclass(frozen=True)
class SortConfig:
    """排序配置

    属性:
        group_field: 分组字段名，同一分组内独立维护 0..n-1 的连续序号
        sort_field: 排序字段名
        id_field: 主键字段名
        deleted_field: 软删除标记字段名（仅 soft_delete=True 时使用）
        soft_delete: 记录类型是否支持软删除
        lock_groups: 事件开始前是否锁定涉及的分组
    """
    group_field: str = "parent_id"
    sort_field: str = "sort_order"
    id_field: str = "id"
    deleted_field: str = "deleted_at"
    soft_delete: bool = False
    lock_groups: bool = False

    @classmethod
    def from_settings(cls, settings: "SortableSettings", soft_delete: bool = False) -> "SortConfig":
        """根据 SortableSettings 创建配置

        软删除是记录类型自身的能力，不属于全局配置，需要单独传入。
        """
        return cls(
            group_field=settings.group_field,
            sort_field=settings.sort_field,
            id_field=settings.id_field,
            deleted_field=settings.deleted_field,
            soft_delete=soft_delete,
            lock_groups=settings.lock_groups,
        )


@dataclass(frozen=True)
class RecordSnapshot:
    """记录快照

    引擎不追踪 ORM 的脏字段，调用方显式传入变更前（prior）与
    变更后（new）两个快照，引擎据此判断发生了什么。
    """
    id: Any
    group_key: Any = None
    sort_order: Optional[int] = None
    deleted: bool = False

    @property
    def is_active(self) -> bool:
        return not self.deleted


@dataclass(frozen=True)
class Bound:
    """区间边界，如 Bound(">", 3) 表示 sort_order > 3"""
    op: str
    value: int

    def __post_init__(self):
        if self.op not in BOUND_OPERATORS:
            raise ValueError(f"不支持的比较符：{self.op}")


def group_changed(prior: RecordSnapshot, new: RecordSnapshot) -> bool:
    """分组是否发生变化"""
    return prior.group_key != new.group_key


def sort_changed(prior: RecordSnapshot, new: RecordSnapshot) -> bool:
    """是否为一次真正的显式调序（新旧序号都存在且不同）"""
    return (
        prior.sort_order is not None
        and new.sort_order is not None
        and prior.sort_order != new.sort_order
    )


def tombstoned(prior: RecordSnapshot, new: RecordSnapshot) -> bool:
    """本次变更是否为软删除"""
    return prior.is_active and new.deleted


def restored(prior: RecordSnapshot, new: RecordSnapshot) -> bool:
    """本次变更是否为恢复软删除"""
    return prior.deleted and new.is_active


__all__ = [
    "SortConfig",
    "RecordSnapshot",
    "Bound",
    "BOUND_OPERATORS",
    "group_changed",
    "sort_changed",
    "tombstoned",
    "restored",
]
