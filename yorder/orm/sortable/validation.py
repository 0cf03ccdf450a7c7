"""目标序号的类型校验

只接受严格的非负整数：bool、字符串 "3"、浮点数 3.0 都视为非法。
"""

from typing import Annotated, Any, Optional

from pydantic import Field, TypeAdapter, ValidationError

_SORT_INDEX_ADAPTER = TypeAdapter(Annotated[int, Field(strict=True, ge=0)])

def coerce_sort_index(value: Any) -> Optional[int]:
    """把调用方传入的目标序号转换为 int，非法时返回 None"""
    # bool 是 int 的子类，需要单独排除
    if isinstance(value, bool):
        return None
    try:
        return _SORT_INDEX_ADAPTER.validate_python(value)
    except ValidationError:
        return None


__all__ = [
    "coerce_sort_index",
]
