"""业务异常测试

测试异常类体系与 Err 快捷创建
"""

import pytest

from yorder.exceptions import (
    BusinessException,
    Err,
    ErrorCode,
    FieldValidationError,
    ResourceNotFoundException,
    ValidationException,
)


class TestBusinessException:
    """BusinessException 测试"""

    def test_defaults(self):
        exc = BusinessException("操作失败")
        assert exc.message == "操作失败"
        assert exc.code == ErrorCode.BUSINESS_ERROR
        assert exc.status_code == 400
        assert exc.details == []
        assert str(exc) == "操作失败"

    def test_to_dict_returns_copies(self):
        exc = BusinessException("操作失败", details=["a"], record_id=1)
        data = exc.to_dict()
        data["details"].append("b")
        data["extra"]["record_id"] = 2

        assert exc.details == ["a"]
        assert exc.extra == {"record_id": 1}

    def test_repr(self):
        assert "BusinessException(message='x'" in repr(BusinessException("x"))


class TestSubclasses:
    """子类测试"""

    def test_not_found(self):
        exc = ResourceNotFoundException(resource_id=3)
        assert exc.status_code == 404
        assert exc.code == ErrorCode.RESOURCE_NOT_FOUND
        assert exc.extra["resource_id"] == 3

    def test_validation(self):
        exc = ValidationException()
        assert exc.status_code == 422
        assert exc.message == "数据验证失败"

    def test_field_validation_error(self):
        exc = FieldValidationError("sort_order", value=7, record_id=1)

        assert isinstance(exc, ValidationException)
        assert exc.field == "sort_order"
        assert exc.message == "sort_order 无效"
        assert exc.code == ErrorCode.INVALID_SORT_INDEX
        assert exc.extra == {"field": "sort_order", "value": 7, "record_id": 1}


class TestErr:
    """Err 快捷创建测试"""

    def test_field(self):
        exc = Err.field("sort_order", "sort_order 超出范围", value=9)
        assert isinstance(exc, FieldValidationError)
        assert exc.message == "sort_order 超出范围"

        with pytest.raises(FieldValidationError):
            raise exc

    @pytest.mark.parametrize("factory,expected_type,status_code", [
        (Err.not_found, ResourceNotFoundException, 404),
        (Err.invalid, ValidationException, 422),
        (Err.fail, BusinessException, 400),
    ])
    def test_factories(self, factory, expected_type, status_code):
        exc = factory()
        assert isinstance(exc, expected_type)
        assert exc.status_code == status_code
