"""排序字段定义

提供标准的排序字段定义 Mixin，简化模型定义。

使用示例:
    from yorder.orm import CoreModel
    from yorder.orm.sortable import SortFieldMixin, SortableMixin

    class Menu(CoreModel, SortFieldMixin, SortableMixin):
        parent_id = mapped_column(Integer, nullable=True)
        title = mapped_column(String(100))
        # sort_order 字段由 SortFieldMixin 自动提供
"""

from typing import Optional

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class SortFieldMixin:
    """排序字段 Mixin

    字段说明:
        - sort_order: 分组内从 0 开始的连续序号，值越小越靠前；
          已软删除的记录为 NULL。由排序引擎维护，创建时传入的值会被覆盖。
    """

    sort_order: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="排序序号"
    )


__all__ = [
    "SortFieldMixin",
]
