"""排序管理 Mixin

把 OrderingEngine 接入 SQLAlchemy 的 flush 流程，模型只需要修改字段并提交，
分组内的序号由映射器事件自动维护：

    ┌─────────────────────┬──────────────────────────────────────────┐
    │ 映射器事件          │ 引擎入口                                 │
    ├─────────────────────┼──────────────────────────────────────────┤
    │ before_insert       │ 清空调用方传入的序号                     │
    │ after_insert        │ after_create（追加到分组末尾）           │
    │ before_update       │ before_update（调序/换组/软删除）        │
    │ after_update        │ after_update（换组追加/恢复追加）        │
    │ before_delete       │ before_delete（物理删除压缩）            │
    └─────────────────────┴──────────────────────────────────────────┘

变更前的值从数据库按主键读取，不依赖对象上缓存的旧值。
同一次 flush 中的多条变更按事件顺序依次落库：调序的目标值在 before_update
中立即写入，插入在 UPDATE 之后的 after_insert 中分配序号。

使用示例:
    from yorder.orm import CoreModel, SoftDeleteMixin
    from yorder.orm.sortable import SortFieldMixin, SortableMixin

    class Menu(CoreModel, SoftDeleteMixin, SortFieldMixin, SortableMixin):
        __sort_group_by__ = "parent_id"

        parent_id = mapped_column(Integer, nullable=True)
        title = mapped_column(String(100))

    menu = Menu(title="首页", parent_id=1)
    menu.save(commit=True)      # 自动追加到分组末尾

    menu.move_to(0)             # 校验目标序号，随后的 flush 完成区间平移
    session.commit()

    menu.parent_id = 2          # 换组：原分组压缩，追加到新分组末尾
    session.commit()
"""

from typing import Any, List, Optional

from sqlalchemy import event, func, inspect
from sqlalchemy.orm import Session, object_session
from sqlalchemy.orm.attributes import set_committed_value

from yorder.exceptions import Err
from yorder.log import get_logger

from ..orm_extensions.soft_delete_mixin import supports_soft_delete
from .engine import OrderingEngine
from .store import SqlAlchemySortStore
from .types import RecordSnapshot, SortConfig, group_changed, restored, sort_changed


logger = get_logger("yorder.orm.sortable")

# session.info / InstanceState.info 中使用的键
_TOUCHED_KEY = "yorder_sortable_touched"
_PRIOR_KEY = "yorder_sortable_prior"


class SortableMixin:
    """排序管理 Mixin

    字段要求（使用者需定义或使用 SortFieldMixin）:
        - sort_order: Optional[int]  排序序号
        - 分组字段（默认 parent_id）

    可配置属性（子类可覆盖）:
        - __sort_field__: 排序字段名，默认 "sort_order"
        - __sort_group_by__: 分组字段名，默认 "parent_id"，值为 NULL 的记录单独成组
        - __sort_lock_groups__: 事件开始前是否锁定分组，默认 False

    与 SoftDeleteMixin 组合时自动启用软删除语义：删除清空序号、恢复追加到末尾。
    """

    # ==================== 配置 ====================

    __sort_field__: str = "sort_order"
    __sort_group_by__: str = "parent_id"
    __sort_lock_groups__: bool = False

    @classmethod
    def sort_config(cls) -> SortConfig:
        """当前模型的排序配置"""
        return SortConfig(
            group_field=cls.__sort_group_by__,
            sort_field=cls.__sort_field__,
            deleted_field=getattr(cls, "__deleted_field__", "deleted_at"),
            soft_delete=supports_soft_delete(cls),
            lock_groups=bool(getattr(cls, "__sort_lock_groups__", False)),
        )

    @classmethod
    def ordering_engine(cls, bind) -> OrderingEngine:
        """创建绑定到 Session 或 Connection 的排序引擎"""
        config = cls.sort_config()
        return OrderingEngine(SqlAlchemySortStore(bind, cls.__table__, config), config)

    # ==================== 内部方法 ====================

    @classmethod
    def _get_sort_field_column(cls):
        return getattr(cls, cls.__sort_field__)

    @classmethod
    def _build_group_query(cls, query, group_key: Any):
        column = getattr(cls, cls.__sort_group_by__)
        if group_key is None:
            return query.filter(column.is_(None))
        return query.filter(column == group_key)

    def _get_sort_value(self) -> Optional[int]:
        return getattr(self, self.__sort_field__)

    def _get_group_value(self) -> Any:
        return getattr(self, self.__sort_group_by__)

    def _sort_session(self) -> Session:
        return object_session(self) or self.__class__.query.session

    def _persisted_snapshot(self) -> Optional[RecordSnapshot]:
        """数据库中当前持久化的快照，未保存的对象返回 None"""
        if self.id is None:
            return None
        session = self._sort_session()
        with session.no_autoflush:
            return self.ordering_engine(session).store.get_snapshot(self.id)

    # ==================== 校验 ====================

    def can_update_sort(self, index: Any) -> bool:
        """目标序号是否可用（基于数据库中的当前值）"""
        prior = self._persisted_snapshot()
        if prior is None or prior.deleted:
            return False
        session = self._sort_session()
        with session.no_autoflush:
            return self.ordering_engine(session).can_update_sort(prior, index)

    def validate_sort_index(self, index: Any) -> None:
        """校验目标序号，非法时抛出 FieldValidationError"""
        prior = self._persisted_snapshot()
        if prior is None or prior.deleted:
            raise Err.field(self.__sort_field__, f"{self.__sort_field__} 无效：记录未保存或已删除")
        session = self._sort_session()
        with session.no_autoflush:
            self.ordering_engine(session).validate_sort_index(index, prior)

    # ==================== 移动 ====================

    def move_to(self, index: int) -> bool:
        """移动到指定位置（从 0 开始）

        先校验目标序号，再修改字段；区间平移在随后的 flush 中完成。

        Raises:
            FieldValidationError: 目标序号非法（与当前相同、超出范围、不是非负整数）

        Example:
            menu.move_to(0)
            session.commit()
        """
        self.validate_sort_index(index)
        setattr(self, self.__sort_field__, index)
        return True

    def move_up(self) -> bool:
        """上移一位，已在最顶部时返回 False"""
        prior = self._persisted_snapshot()
        if prior is None or not prior.is_active or not prior.sort_order:
            return False
        return self.move_to(prior.sort_order - 1)

    def move_down(self) -> bool:
        """下移一位，已在最底部时返回 False"""
        prior = self._persisted_snapshot()
        if prior is None or not prior.is_active or prior.sort_order is None:
            return False
        max_order = self.get_max_sort_order(prior.group_key)
        if max_order is None or prior.sort_order >= max_order:
            return False
        return self.move_to(prior.sort_order + 1)

    def move_to_top(self) -> bool:
        """置顶，已在最顶部时返回 False"""
        prior = self._persisted_snapshot()
        if prior is None or not prior.is_active or not prior.sort_order:
            return False
        return self.move_to(0)

    def move_to_bottom(self) -> bool:
        """置底，已在最底部时返回 False"""
        prior = self._persisted_snapshot()
        if prior is None or not prior.is_active or prior.sort_order is None:
            return False
        max_order = self.get_max_sort_order(prior.group_key)
        if max_order is None or prior.sort_order >= max_order:
            return False
        return self.move_to(max_order)

    # ==================== 查询 ====================

    def get_previous(self):
        """获取前一个对象（同组中排序值更小的最近记录），没有返回 None"""
        current = self._get_sort_value()
        if current is None:
            return None
        sort_column = self._get_sort_field_column()
        return (
            self.sorted_query(self._get_group_value())
            .filter(sort_column < current)
            .order_by(None)
            .order_by(sort_column.desc())
            .first()
        )

    def get_next(self):
        """获取后一个对象（同组中排序值更大的最近记录），没有返回 None"""
        current = self._get_sort_value()
        if current is None:
            return None
        return (
            self.sorted_query(self._get_group_value())
            .filter(self._get_sort_field_column() > current)
            .first()
        )

    @classmethod
    def sorted_query(cls, group_key: Any = None):
        """分组内有效记录按序号升序的查询

        Example:
            Menu.sorted_query(parent_id).limit(10).all()
        """
        config = cls.sort_config()
        sort_column = cls._get_sort_field_column()
        query = cls._build_group_query(cls.query, group_key).filter(sort_column.isnot(None))
        if config.soft_delete:
            query = query.filter(getattr(cls, config.deleted_field).is_(None))
        return query.order_by(sort_column)

    @classmethod
    def get_sorted(cls, group_key: Any = None, desc: bool = False) -> list:
        """获取分组内排序后的记录列表

        Example:
            menus = Menu.get_sorted(parent_id)
        """
        query = cls.sorted_query(group_key)
        if desc:
            query = query.order_by(None).order_by(cls._get_sort_field_column().desc())
        return query.all()

    @classmethod
    def get_max_sort_order(cls, group_key: Any = None) -> Optional[int]:
        """分组内最大序号，分组为空返回 None"""
        return cls.sorted_query(group_key).order_by(None).with_entities(
            func.max(cls._get_sort_field_column())
        ).scalar()

    @classmethod
    def get_sort_orders(cls, group_key: Any = None) -> List[int]:
        """分组内有效记录的序号（升序）"""
        return [value for (value,) in cls.sorted_query(group_key).with_entities(cls._get_sort_field_column())]

    @classmethod
    def check_sort_order(cls, group_key: Any = None) -> bool:
        """检查分组内序号是否恰好为 0..n-1"""
        orders = cls.get_sort_orders(group_key)
        return orders == list(range(len(orders)))


# ==================== 事件监听器 ====================

def _snapshot_of(target: SortableMixin, config: SortConfig, fallback: RecordSnapshot) -> RecordSnapshot:
    """用对象上已加载的值构造快照，未加载的字段沿用 fallback"""
    values = inspect(target).dict
    if config.soft_delete and config.deleted_field in values:
        deleted = values[config.deleted_field] is not None
    else:
        deleted = fallback.deleted
    return RecordSnapshot(
        id=fallback.id,
        group_key=values.get(config.group_field, fallback.group_key),
        sort_order=values.get(config.sort_field, fallback.sort_order),
        deleted=deleted,
    )


def _mark_touched(target: SortableMixin) -> None:
    session = object_session(target)
    if session is not None:
        session.info.setdefault(_TOUCHED_KEY, set()).add(target.__class__)


@event.listens_for(SortableMixin, "before_insert", propagate=True)
def event_before_insert_clear_sort_order(mapper, connection, target):
    """插入前清空序号，调用方传入的值不生效

    序号在 after_insert 中分配：同一次 flush 的 UPDATE 先于 INSERT 执行，
    此时分组已经完成压缩。
    """
    setattr(target, target.__sort_field__, None)


@event.listens_for(SortableMixin, "after_insert", propagate=True)
def event_after_insert_assign_sort_order(mapper, connection, target):
    """插入后追加到分组末尾"""
    config = target.sort_config()
    deleted = config.soft_delete and getattr(target, config.deleted_field) is not None
    snapshot = RecordSnapshot(
        id=target.id,
        group_key=getattr(target, config.group_field),
        deleted=deleted,
    )
    position = target.ordering_engine(connection).after_create(snapshot)
    if position is not None:
        set_committed_value(target, config.sort_field, position)


@event.listens_for(SortableMixin, "before_update", propagate=True)
def event_before_update_reorder(mapper, connection, target):
    """更新前：调序、换组、软删除"""
    config = target.sort_config()
    state = inspect(target)

    watched = [config.group_field, config.sort_field]
    if config.soft_delete:
        watched.append(config.deleted_field)
    if not any(state.attrs[name].history.has_changes() for name in watched):
        return

    engine = target.ordering_engine(connection)
    prior = engine.store.get_snapshot(target.id)
    if prior is None:
        return
    new = _snapshot_of(target, config, prior)

    # 有效记录的序号不能被直接清空
    if (
        prior.is_active and new.is_active
        and not group_changed(prior, new)
        and prior.sort_order is not None and new.sort_order is None
    ):
        logger.debug(f"记录 {prior.id} 的序号被清空，保留原序号 {prior.sort_order}")
        set_committed_value(target, config.sort_field, prior.sort_order)
        return

    engine.before_update(prior, new)
    state.info[_PRIOR_KEY] = prior
    _mark_touched(target)

    # 这些情况下序号由引擎写入，本次 UPDATE 不携带调用方的值
    if new.deleted or restored(prior, new) or group_changed(prior, new):
        setattr(target, config.sort_field, None)
    elif prior.sort_order is not None:
        # 调序的目标值立即落库，同一次 flush 中后续事件的平移才能覆盖到本记录；
        # UPDATE 语句不再携带序号
        if sort_changed(prior, new):
            engine.store.set_sort_order(prior.id, new.sort_order)
        set_committed_value(target, config.sort_field, new.sort_order)


@event.listens_for(SortableMixin, "after_update", propagate=True)
def event_after_update_append(mapper, connection, target):
    """更新后：换组或恢复时追加到分组末尾"""
    state = inspect(target)
    prior = state.info.pop(_PRIOR_KEY, None)
    if prior is None:
        return

    config = target.sort_config()
    new = _snapshot_of(target, config, prior)
    position = target.ordering_engine(connection).after_update(prior, new)
    if position is not None:
        set_committed_value(target, config.sort_field, position)


@event.listens_for(SortableMixin, "before_delete", propagate=True)
def event_before_delete_compact(mapper, connection, target):
    """物理删除前压缩分组"""
    engine = target.ordering_engine(connection)
    snapshot = engine.store.get_snapshot(target.id)
    if snapshot is None or snapshot.deleted:
        return
    engine.before_delete(snapshot)
    _mark_touched(target)


@event.listens_for(Session, "after_flush_postexec")
def event_after_flush_expire_sort_orders(session, flush_context):
    """flush 结束后让同类对象重新加载被批量平移的序号"""
    touched = session.info.pop(_TOUCHED_KEY, None)
    if not touched:
        return
    for obj in list(session.identity_map.values()):
        if isinstance(obj, tuple(touched)):
            session.expire(obj, [obj.__sort_field__])


@event.listens_for(Session, "after_soft_rollback")
def event_after_rollback_clear(session, previous_transaction):
    session.info.pop(_TOUCHED_KEY, None)


__all__ = [
    "SortableMixin",
]
