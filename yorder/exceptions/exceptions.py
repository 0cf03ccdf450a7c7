"""业务异常类定义

定义排序引擎使用的业务异常类体系。
"""

import copy
from enum import Enum
from http import HTTPStatus
from typing import Optional, List, Any, Dict, Union


class ErrorCode(str, Enum):
    """错误代码枚举

    继承自 str，可以直接作为字符串使用。

    使用示例:
        from yorder.exceptions import ErrorCode, FieldValidationError

        try:
            banner.move_to(99)
        except FieldValidationError as e:
            if e.code == ErrorCode.INVALID_SORT_INDEX:
                ...
    """

    # ==================== 通用错误 ====================
    BUSINESS_ERROR = "BUSINESS_ERROR"
    OPERATION_FAILED = "OPERATION_FAILED"

    # ==================== 资源相关 (404) ====================
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"

    # ==================== 验证相关 (422) ====================
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_PARAMETER = "INVALID_PARAMETER"
    INVALID_SORT_INDEX = "INVALID_SORT_INDEX"


# 类型别名，支持枚举和字符串
ErrorCodeType = Union[str, ErrorCode]


class BusinessException(Exception):
    """业务异常基类

    所有业务异常都应该继承此类。

    属性:
        message: 错误消息（面向用户）
        code: 错误代码（用于程序判断，支持 ErrorCode 枚举或字符串）
        status_code: HTTP 状态码（供上层 Web 框架映射响应）
        details: 详细错误信息列表
        extra: 额外的上下文信息
    """

    def __init__(
        self,
        message: str,
        code: ErrorCodeType = ErrorCode.BUSINESS_ERROR,
        status_code: int = HTTPStatus.BAD_REQUEST,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.message = message
        self.code = code
        self.status_code = int(status_code)
        self.details = details or []
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式

        Returns:
            包含异常信息的字典
        """
        return {
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            # 返回深拷贝，避免调用方修改返回值反向污染异常对象内部状态
            "details": copy.deepcopy(self.details),
            "extra": copy.deepcopy(self.extra)
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"status_code={self.status_code})"
        )


class ResourceNotFoundException(BusinessException):
    """资源不存在异常

    使用示例:
        raise ResourceNotFoundException("记录不存在", resource_type="Banner", resource_id=123)
    """

    def __init__(
        self,
        message: str = "资源不存在",
        code: ErrorCodeType = ErrorCode.RESOURCE_NOT_FOUND,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=HTTPStatus.NOT_FOUND,
            details=details,
            **extra
        )


class ValidationException(BusinessException):
    """数据验证异常

    当数据验证失败时抛出此异常。
    """

    def __init__(
        self,
        message: str = "数据验证失败",
        code: ErrorCodeType = ErrorCode.VALIDATION_ERROR,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            details=details,
            **extra
        )


class FieldValidationError(ValidationException):
    """字段级验证异常

    指明具体出错的字段，排序引擎在拒绝非法的目标序号时抛出。
    抛出时尚未对存储做任何修改，调用方修正后重新提交即可。

    使用示例:
        raise FieldValidationError("sort_order", value=7)
        # message: "sort_order 无效"
    """

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        code: ErrorCodeType = ErrorCode.INVALID_SORT_INDEX,
        details: Optional[List[str]] = None,
        **extra: Any
    ):
        self.field = field
        super().__init__(
            message=message or f"{field} 无效",
            code=code,
            details=details,
            field=field,
            **extra
        )


class Err:
    """异常快捷创建类

    使用示例:
        from yorder.exceptions import Err

        raise Err.field("sort_order", value=-1)
        raise Err.not_found("记录不存在", resource_id=1)
        raise Err.invalid("数据验证失败", details=["parent_id 不能为空"])
    """

    @staticmethod
    def not_found(message: str = "资源不存在", **kwargs) -> ResourceNotFoundException:
        """资源不存在 (404)"""
        return ResourceNotFoundException(message, **kwargs)

    @staticmethod
    def invalid(message: str = "数据验证失败", **kwargs) -> ValidationException:
        """数据验证失败 (422)"""
        return ValidationException(message, **kwargs)

    @staticmethod
    def field(field: str, message: Optional[str] = None, **kwargs) -> FieldValidationError:
        """字段验证失败 (422)

        Args:
            field: 出错的字段名
            message: 错误消息，默认 "<field> 无效"
            **kwargs: 额外参数（code, details 等）
        """
        return FieldValidationError(field, message, **kwargs)

    @staticmethod
    def fail(message: str = "操作失败", **kwargs) -> BusinessException:
        """通用业务异常 (400)"""
        return BusinessException(message, **kwargs)
