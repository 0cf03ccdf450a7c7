"""日志工具测试

测试 setup_logger / get_logger / 格式化器
"""

import logging
import os
from logging.handlers import RotatingFileHandler

import pytest

from yorder.config import LoggingSettings
from yorder.log import (
    MicrosecondFormatter,
    create_formatter,
    get_logger,
    setup_logger,
    setup_sql_logger,
)


@pytest.fixture
def clean_logger():
    """提供一次性的命名日志器，测试结束后清理处理器"""
    names = []

    def _make(name):
        names.append(name)
        return name

    yield _make

    for name in names:
        _logger = logging.getLogger(name)
        for handler in list(_logger.handlers):
            handler.close()
        _logger.handlers.clear()
        _logger.propagate = True


class TestGetLogger:
    """get_logger 测试"""

    def test_infer_module_name(self):
        assert get_logger().name == __name__

    def test_short_name_gets_prefix(self):
        assert get_logger("orm").name == "yorder.orm"

    def test_dotted_name_unchanged(self):
        assert get_logger("sqlalchemy.engine").name == "sqlalchemy.engine"
        assert get_logger("yorder.orm.sortable").name == "yorder.orm.sortable"


class TestSetupLogger:
    """setup_logger 测试"""

    def test_console_handler(self, clean_logger):
        name = clean_logger("yorder.test.console")
        _logger = setup_logger(name, level="DEBUG")

        assert _logger.level == logging.DEBUG
        assert len(_logger.handlers) == 1
        assert isinstance(_logger.handlers[0].formatter, MicrosecondFormatter)

    def test_repeated_setup_replaces_handlers(self, clean_logger):
        name = clean_logger("yorder.test.repeat")
        setup_logger(name)
        _logger = setup_logger(name)
        assert len(_logger.handlers) == 1

    def test_rotating_file_handler(self, clean_logger, temp_dir):
        name = clean_logger("yorder.test.file")
        log_file = os.path.join(temp_dir, "logs", "sortable.log")
        _logger = setup_logger(
            name,
            log_file=log_file,
            console=False,
            file_handler_options={"maxBytes": 1024, "backupCount": 2},
        )
        _logger.info("序号已调整")
        for handler in _logger.handlers:
            handler.flush()

        assert isinstance(_logger.handlers[0], RotatingFileHandler)
        with open(log_file, encoding="utf-8") as f:
            assert "序号已调整" in f.read()

    def test_sql_logger_disabled_by_config(self):
        assert setup_sql_logger(config=LoggingSettings(sql_log_enabled=False)) is None


class TestFormatter:
    """格式化器测试"""

    def test_microseconds(self):
        formatter = create_formatter()
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.created = 1700000000.5
        assert formatter.formatTime(record).endswith(".500000")

    def test_plain_formatter(self):
        formatter = create_formatter("%(message)s", use_microseconds=False)
        assert not isinstance(formatter, MicrosecondFormatter)
