"""异常处理模块

提供业务异常类体系。

使用示例:
    from yorder.exceptions import Err, FieldValidationError

    try:
        item.move_to(10)
    except FieldValidationError as e:
        print(e.field, e.message)
"""

from .exceptions import (
    # ===== 推荐使用 =====
    Err,                            # 异常快捷创建类
    ErrorCode,                      # 错误代码枚举
    ErrorCodeType,

    # ===== 高级用法 =====
    BusinessException,              # 业务异常基类
    ResourceNotFoundException,      # 404
    ValidationException,            # 422
    FieldValidationError,           # 422，带字段名
)

__all__ = [
    "Err",
    "ErrorCode",
    "ErrorCodeType",
    "BusinessException",
    "ResourceNotFoundException",
    "ValidationException",
    "FieldValidationError",
]
