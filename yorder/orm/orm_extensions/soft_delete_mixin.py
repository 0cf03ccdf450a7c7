"""软删除Mixin类生成器

软删除是记录类型自己声明的能力（__soft_delete__ = True），
已删除记录的排除通过显式的过滤条件完成，不会自动改写查询：

    Menu.query.filter(Menu.not_deleted())
    Menu.active_filter(Menu.query)
"""

from datetime import datetime
from typing import Any, Callable, Optional, Type, TYPE_CHECKING

from sqlalchemy import Column, DateTime
from sqlalchemy.sql.type_api import TypeEngine


def generate_soft_delete_mixin_class(
    deleted_field_name: str = "deleted_at",
    class_name: str = "_SoftDeleteMixin",
    deleted_field_type: TypeEngine = DateTime(timezone=False),
    delete_method_default_value: Callable[[], Any] = lambda: datetime.now(),
) -> Type:
    """生成软删除Mixin类

    功能：
    - 添加软删除字段（如 deleted_at）
    - 提供 soft_delete() / undelete() / restore() 方法和 is_deleted 属性
    - 提供 not_deleted() / active_filter() 显式过滤条件
    - 声明 __soft_delete__ 能力标记，排序引擎据此启用删除清空与恢复追加

    Args:
        deleted_field_name: 软删除字段名，默认 "deleted_at"
        class_name: 生成的类名
        deleted_field_type: 软删除字段类型，为 None 时不生成字段（使用外部定义的字段）
        delete_method_default_value: 软删除时的默认值

    Returns:
        动态生成的Mixin类

    使用示例:
        ArchiveMixin = generate_soft_delete_mixin_class("archived_at")

        class Note(CoreModel, ArchiveMixin):
            title = mapped_column(String(50))

        note.soft_delete()
        Note.query.filter(Note.not_deleted()).all()
    """
    class_attributes = {
        "__soft_delete__": True,
        "__deleted_field__": deleted_field_name,
    }

    if deleted_field_type is not None:
        class_attributes[deleted_field_name] = Column(
            deleted_field_name, deleted_field_type, nullable=True, default=None, comment="删除时间（软删除标记）"
        )

    def soft_delete(_self, v: Optional[Any] = None):
        """软删除当前对象"""
        setattr(_self, deleted_field_name, v or delete_method_default_value())

    def undelete(_self):
        """恢复软删除的对象"""
        setattr(_self, deleted_field_name, None)

    def is_deleted(_self) -> bool:
        """检查对象是否已被软删除"""
        return getattr(_self, deleted_field_name) is not None

    def not_deleted(cls):
        """未删除记录的过滤条件"""
        return getattr(cls, deleted_field_name).is_(None)

    def active_filter(cls, query):
        """为查询添加未删除过滤条件"""
        return query.filter(cls.not_deleted())

    class_attributes.update(
        soft_delete=soft_delete,
        undelete=undelete,
        restore=undelete,
        is_deleted=property(is_deleted),
        not_deleted=classmethod(not_deleted),
        active_filter=classmethod(active_filter),
    )

    return type(class_name, tuple(), class_attributes)


_SoftDeleteMixinBase = generate_soft_delete_mixin_class()


class SoftDeleteMixin(_SoftDeleteMixinBase):
    """软删除Mixin

    使用 generate_soft_delete_mixin_class 的默认配置生成，字段为 deleted_at。

    提供方法：
    - soft_delete(v=None): 软删除，deleted_at 设置为当前时间或指定值
    - undelete() / restore(): 恢复，deleted_at 设置为 None
    - is_deleted: 属性，是否已被软删除
    - not_deleted(): 类方法，未删除记录的过滤条件
    - active_filter(query): 类方法，为查询添加未删除过滤

    使用示例:
        class Menu(CoreModel, SoftDeleteMixin, SortFieldMixin, SortableMixin):
            parent_id = mapped_column(Integer, nullable=True)

        menu.soft_delete()
        session.commit()

        Menu.active_filter(Menu.query).all()

        menu.restore()
        session.commit()
    """
    if TYPE_CHECKING:
        deleted_at: Optional[datetime]

        def soft_delete(self, v: Optional[datetime] = None) -> None: ...

        def undelete(self) -> None: ...

        def restore(self) -> None: ...

        @classmethod
        def not_deleted(cls): ...

        @classmethod
        def active_filter(cls, query): ...


def supports_soft_delete(model_or_class) -> bool:
    """记录类型是否声明了软删除能力"""
    cls = model_or_class if isinstance(model_or_class, type) else type(model_or_class)
    return bool(getattr(cls, "__soft_delete__", False))


__all__ = [
    "generate_soft_delete_mixin_class",
    "SoftDeleteMixin",
    "supports_soft_delete",
]
