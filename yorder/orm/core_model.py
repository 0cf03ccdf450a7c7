"""
ORM基础模型

提供时间戳字段和常用的CRUD操作
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, Query, Session, declared_attr, mapped_column

if TYPE_CHECKING:
    from typing_extensions import Self

from .id_model import IdModel
from .utils import to_snake_case


class CoreModel(IdModel):
    """ORM基础模型类

    继承自 IdModel，提供功能：
    - 自增主键（继承自 IdModel）
    - 自动表名生成（驼峰转下划线）
    - 创建/更新时间戳
    - 常用CRUD操作方法

    使用示例:
        from yorder.orm import CoreModel, init_database

        init_database("sqlite:///./test.db")

        class MenuItem(CoreModel):
            title: Mapped[str] = mapped_column(String(50))

        item = MenuItem(title="首页")
        item.save(commit=True)

    软删除能力由 SoftDeleteMixin 单独提供，不在这里定义 deleted_at。
    """
    __abstract__ = True

    # 允许非 Mapped[] 的类型注解（如 _session）
    __allow_unmapped__ = True

    # query 属性在 init_database 后通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]
    else:
        query = None

    _session: Session = None

    # 自动根据类名创建表名
    @declared_attr.directive
    def __tablename__(cls) -> str:
        return to_snake_case(cls.__name__)

    # 时间戳字段
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        comment="创建时间"
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        onupdate=func.now(),
        comment="更新时间"
    )

    # 系统字段列表（构造时自动忽略这些字段）
    _system_fields: ClassVar[set] = {'id', 'created_at', 'updated_at'}

    def __init__(self, **kwargs):
        """初始化模型实例

        自动忽略系统字段（id, created_at, updated_at），
        这些字段由系统自动管理，用户传入的值会被静默忽略。
        """
        for field in self._system_fields:
            kwargs.pop(field, None)
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    @property
    def session(self) -> Session:
        """获取当前session

        优先使用对象所在的 session，其次从 query 属性获取，
        最后从全局 scoped_session 获取
        """
        from sqlalchemy.orm import object_session

        current = object_session(self)
        if current is not None:
            return current
        if self._session is None:
            if self.__class__.query is not None:
                self._session = self.__class__.query.session
            else:
                from .db_session import db_manager
                self._session = db_manager.get_session()
        return self._session

    # ==================== CRUD 操作方法 ====================

    def save(self, commit: bool = False) -> Self:
        """保存对象（自动判断新增或更新）

        Args:
            commit: 是否立即提交，默认False

        Returns:
            self: 返回自身，支持链式调用
        """
        # session.add() 是幂等的，对已在 session 中的对象调用是安全的
        self.session.add(self)
        self.__is_commit(commit)
        return self

    @classmethod
    def save_all(cls, objects: list, commit: bool = False):
        """批量保存对象（新增或更新）"""
        if not objects:
            return objects
        cls.query.session.add_all(objects)
        if commit:
            cls.query.session.commit()
        return objects

    def update(self, commit: bool = False, **kwargs) -> Self:
        """更新对象属性

        支持两种使用方式：
        1. 先修改属性，再调用 update()：
           item.parent_id = 2
           item.update(commit=True)

        2. 通过 kwargs 直接更新属性：
           item.update(parent_id=2, commit=True)
        """
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
        self.__is_commit(commit)
        return self

    def delete(self, commit: bool = False, hard: bool = False):
        """删除对象

        支持软删除的模型默认执行软删除，hard=True 时物理删除。
        """
        if getattr(self.__class__, "__soft_delete__", False) and not hard:
            self.soft_delete()
            self.session.add(self)
        else:
            self.session.delete(self)
        self.__is_commit(commit)

    @classmethod
    def get(cls, id: int):
        """根据ID获取对象，不存在返回None"""
        return cls.query.filter_by(id=id).first()

    @classmethod
    def get_all(cls) -> List[Self]:
        """获取所有记录"""
        return cls.query.all()

    def __is_commit(self, commit=False):
        if commit:
            self.session.commit()


__all__ = [
    "CoreModel",
]
