"""ORM 扩展

- SoftDeleteMixin: 软删除能力（deleted_at 字段、soft_delete/restore、显式过滤条件）
- generate_soft_delete_mixin_class: 自定义软删除字段名时使用
"""

from .soft_delete_mixin import (
    SoftDeleteMixin,
    generate_soft_delete_mixin_class,
    supports_soft_delete,
)

__all__ = [
    "SoftDeleteMixin",
    "generate_soft_delete_mixin_class",
    "supports_soft_delete",
]
